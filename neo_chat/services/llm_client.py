"""Async HTTP client for an Ollama-style ``/api/chat`` completion endpoint.

Two request shapes are supported:

* **Streaming completion** — ``{"model", "messages", "stream": true}``.  The
  body is newline-delimited JSON; each record may carry a
  ``message.content`` fragment and a ``done`` flag.  The ``done`` record ends
  the reply; any content it carries is not part of it.
* **Tool-call completion** — ``{"model", "messages", "stream": false,
  "tools"}``.  One JSON object comes back and the structured decision lives
  at ``message.tool_calls``.

Responses are validated into typed models instead of being indexed blindly;
each failure mode maps to one error class from :mod:`neo_chat.errors`.
There are no retries.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from neo_chat.config import REQUEST_TIMEOUT_SECONDS
from neo_chat.errors import (
    MissingFieldError,
    MissingToolCallError,
    NeoChatError,
    NetworkError,
    ProtocolError,
    UpstreamError,
)
from neo_chat.messages import Message
from neo_chat.personas import PersonaConfig
from neo_chat.services.metrics import metrics

logger = logging.getLogger(__name__)


# ── Response models ──────────────────────────────────────────────────


class ChunkMessage(BaseModel):
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def text_or_empty(cls, value: Any) -> str:
        # null or non-text content carries no fragment
        return value if isinstance(value, str) else ""


class StreamChunk(BaseModel):
    """One NDJSON record of a streaming completion."""

    message: ChunkMessage | None = None
    done: bool = False


class ToolFunction(BaseModel):
    name: str = ""
    arguments: dict[str, Any] = {}

    @field_validator("arguments", mode="before")
    @classmethod
    def decode_arguments(cls, value: Any) -> Any:
        # OpenAI-compatible servers send arguments as a JSON string.
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value if value is not None else {}


class ToolCall(BaseModel):
    function: ToolFunction


class ToolCallResult(BaseModel):
    """The ``message.tool_calls`` array of a tool-call completion."""

    model_config = ConfigDict(frozen=True)

    calls: list[ToolCall]

    def first_argument(self, name: str) -> Any:
        """Return ``calls[0].function.arguments[name]``.

        Raises:
            MissingFieldError: when there is no call or the field is absent.
        """
        if not self.calls:
            raise MissingFieldError("message.tool_calls[0]", "Tool call list is empty")
        arguments = self.calls[0].function.arguments
        if name not in arguments:
            raise MissingFieldError(f"message.tool_calls[0].function.arguments.{name}")
        return arguments[name]


def parse_stream_record(line: str) -> StreamChunk:
    """Decode one NDJSON line, raising ``ProtocolError`` on bad input."""
    try:
        return StreamChunk.model_validate_json(line)
    except ValidationError as exc:
        raise ProtocolError(f"Malformed streaming record {line[:200]!r}: {exc}") from exc


def parse_tool_response(body: Any, model: str) -> ToolCallResult:
    """Pull ``message.tool_calls`` out of a decoded tool-call response."""
    if not isinstance(body, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(body).__name__}")
    message = body.get("message")
    if not isinstance(message, dict) or message.get("tool_calls") is None:
        raise MissingToolCallError(model)
    try:
        return ToolCallResult.model_validate({"calls": message["tool_calls"]})
    except (ValidationError, ValueError) as exc:
        raise ProtocolError(f"Malformed tool_calls in response: {exc}") from exc


# ── Client ───────────────────────────────────────────────────────────


class LLMClient:
    """Talks to the completion endpoint named by each persona.

    One ``httpx.AsyncClient`` is shared by every persona; the URL comes from
    the persona so several model servers can be mixed.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self._client = http_client or httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> LLMClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @staticmethod
    def _payload(
        history: Sequence[Message], persona: PersonaConfig, *, stream: bool,
    ) -> dict[str, Any]:
        return {
            "model": persona.model,
            "messages": [m.to_wire() for m in history],
            "stream": stream,
        }

    async def complete_streaming(
        self, history: Sequence[Message], persona: PersonaConfig,
    ) -> str:
        """Send *history* and return the concatenated streamed reply."""
        payload = self._payload(history, persona, stream=True)
        fragments: list[str] = []
        t0 = time.perf_counter()
        try:
            async with self._client.stream("POST", persona.url, json=payload) as response:
                if not response.is_success:
                    await response.aread()
                    raise UpstreamError(
                        f"Completion endpoint returned {response.status_code}: "
                        f"{response.text[:500]}",
                        status_code=response.status_code,
                        url=persona.url,
                    )
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    chunk = parse_stream_record(line)
                    if chunk.done:
                        break
                    if chunk.message is not None:
                        fragments.append(chunk.message.content)
        except httpx.RequestError as exc:
            self._record_failure("chat_stream", exc, t0)
            raise NetworkError(
                f"Could not reach {persona.url}: {type(exc).__name__}: {exc}",
                url=persona.url,
            ) from exc
        except NeoChatError as exc:
            self._record_failure("chat_stream", exc, t0)
            raise

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("llm", "chat_stream", latency_ms=elapsed)
        text = "".join(fragments)
        logger.debug(
            "Streamed %d chunks (%d chars) from %s in %.0fms",
            len(fragments), len(text), persona.model, elapsed,
        )
        return text

    async def complete_tool(
        self,
        history: Sequence[Message],
        persona: PersonaConfig,
        tools: list[dict[str, Any]] | None = None,
    ) -> ToolCallResult:
        """Ask for a structured tool-call decision instead of free text."""
        payload = self._payload(history, persona, stream=False)
        payload["tools"] = tools if tools is not None else (persona.tools or [])
        t0 = time.perf_counter()
        try:
            response = await self._client.post(persona.url, json=payload)
            if not response.is_success:
                raise UpstreamError(
                    f"Completion endpoint returned {response.status_code}: "
                    f"{response.text[:500]}",
                    status_code=response.status_code,
                    url=persona.url,
                )
            try:
                body = response.json()
            except ValueError as exc:
                raise ProtocolError(
                    f"Tool-call response is not valid JSON: {response.text[:200]!r}"
                ) from exc
            result = parse_tool_response(body, persona.model)
        except httpx.RequestError as exc:
            self._record_failure("tool_call", exc, t0)
            raise NetworkError(
                f"Could not reach {persona.url}: {type(exc).__name__}: {exc}",
                url=persona.url,
            ) from exc
        except NeoChatError as exc:
            self._record_failure("tool_call", exc, t0)
            raise

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("llm", "tool_call", latency_ms=elapsed)
        logger.debug(
            "Tool call from %s returned %d call(s) in %.0fms",
            persona.model, len(result.calls), elapsed,
        )
        return result

    @staticmethod
    def _record_failure(operation: str, exc: Exception, t0: float) -> None:
        metrics.record_failure(
            "llm", operation,
            error_type=type(exc).__name__,
            latency_ms=(time.perf_counter() - t0) * 1000,
        )
