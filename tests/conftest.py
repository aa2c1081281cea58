"""Shared test fixtures for the Néo chat test suite."""

from __future__ import annotations

import json
import os
from collections.abc import Callable

import httpx
import pytest

from neo_chat.personas import PersonaConfig, Personas, WikiSettings

LLM_URL = "http://llm.test/api/chat"
WIKI_URL = "http://wiki.test"
ZIM_NAME = "wikipedia_en_all"


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts."""
    os.environ["METRICS_ENABLED"] = "false"
    os.environ.setdefault("NEO_REQUEST_TIMEOUT", "5")


# ── Wire helpers ─────────────────────────────────────────────────────


def ndjson(*records: dict) -> bytes:
    """Encode records the way a streaming completion endpoint sends them."""
    return b"".join(json.dumps(r).encode() + b"\n" for r in records)


def stream_body(text: str, *, pieces: int = 1) -> bytes:
    """A streamed reply split into *pieces* fragments plus the done record."""
    size = max(1, -(-len(text) // pieces))
    chunks = [{"message": {"content": text[i : i + size]}} for i in range(0, len(text), size)]
    return ndjson(*chunks, {"done": True})


def tool_body(**arguments) -> dict:
    """A non-streaming tool-call response carrying *arguments*."""
    return {
        "message": {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"function": {"name": "decide", "arguments": arguments}}],
        },
        "done": True,
    }


def make_persona(prompt: str = "prompt", **overrides) -> PersonaConfig:
    data = {"url": LLM_URL, "model": "test-model", "system_prompt": prompt}
    data.update(overrides)
    return PersonaConfig(**data)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def personas() -> Personas:
    return Personas(
        categorizer=make_persona("CATEGORIZE", tools=[{"type": "function"}]),
        chat=make_persona("CHAT"),
        resume=make_persona("RESUME"),
        wiki_search=make_persona("WIKI-SEARCH", tools=[{"type": "function"}]),
        wiki_best=make_persona("WIKI-BEST"),
        wiki_resume=make_persona("WIKI-RESUME"),
        wiki=WikiSettings(wiki_url=WIKI_URL, zim_name=ZIM_NAME),
    )


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory fixture: an AsyncClient whose requests go to *handler*."""

    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


# ── Fake backend for pipeline tests ──────────────────────────────────


def search_page(*titles: str) -> str:
    links = "".join(f'<li><a href="/content/x/A/{t}">{t}</a></li>' for t in titles)
    return f'<html><body><div class="results"><ul>{links}</ul></div></body></html>'


class FakeBackend:
    """Serves the completion endpoint and the mirror from canned data.

    Completion requests are answered by the system prompt of their first
    message: tool-call requests get ``tool_args[prompt]``, streamed requests
    get ``replies[prompt]``.  Every request is recorded in ``requests``.
    """

    def __init__(
        self,
        *,
        tool_args: dict[str, dict] | None = None,
        replies: dict[str, str] | None = None,
        searches: dict[str, list[str]] | None = None,
        articles: dict[str, str] | None = None,
    ):
        self.tool_args = tool_args or {}
        self.replies = replies or {}
        self.searches = searches or {}
        self.articles = articles or {}
        self.requests: list[httpx.Request] = []

    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def searched_patterns(self) -> list[str]:
        return [
            r.url.params["pattern"] for r in self.requests if r.url.path == "/search"
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            payload = json.loads(request.content)
            messages = payload["messages"]
            key = messages[0]["content"] if messages[0]["role"] == "system" else messages[-1]["content"]
            if "tools" in payload:
                if key not in self.tool_args:
                    return httpx.Response(200, json={"message": {"content": "no tools"}})
                return httpx.Response(200, json=tool_body(**self.tool_args[key]))
            if key not in self.replies:
                return httpx.Response(500, text=f"no canned reply for {key!r}")
            return httpx.Response(200, content=stream_body(self.replies[key], pieces=3))

        if request.url.path == "/search":
            pattern = request.url.params["pattern"]
            return httpx.Response(200, text=search_page(*self.searches.get(pattern, [])))

        prefix = f"/content/{ZIM_NAME}/A/"
        if request.url.path.startswith(prefix):
            title = request.url.path[len(prefix):]
            if title in self.articles:
                return httpx.Response(200, text=self.articles[title])
        return httpx.Response(404, text="not found")
