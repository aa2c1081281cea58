"""HTTP client for an offline encyclopedia mirror served by kiwix-serve.

Two endpoints are used:

* ``GET {wiki_url}/search?books.name={zim}&pattern={query}`` returns an HTML
  page whose ``results`` container lists matching articles as anchors.
* ``GET {wiki_url}/content/{zim}/A/{title}`` returns the article HTML.

No caching and no retries: each turn hits the mirror afresh.
"""

from __future__ import annotations

import logging
import time
from html.parser import HTMLParser
from urllib.parse import quote

import httpx

from neo_chat.config import REQUEST_TIMEOUT_SECONDS
from neo_chat.errors import NeoChatError, NetworkError, ProtocolError, UpstreamError
from neo_chat.personas import WikiSettings
from neo_chat.services.metrics import metrics

logger = logging.getLogger(__name__)

RESULTS_CLASS = "results"

# Elements that never get a closing tag; they must not affect nesting depth.
_VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
})


class _SearchResultsParser(HTMLParser):
    """Collects the text of every ``<a>`` inside the first ``.results`` element."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.found_container = False
        self.titles: list[str] = []
        self._depth = 0          # open elements inside the container, 0 = outside
        self._closed = False
        self._anchor: list[str] | None = None

    def handle_starttag(self, tag, attrs):
        if self._closed or tag in _VOID_TAGS:
            return
        if self._depth:
            self._depth += 1
            if tag == "a":
                self._anchor = []
            return
        classes = (dict(attrs).get("class") or "").split()
        if RESULTS_CLASS in classes:
            self.found_container = True
            self._depth = 1

    def handle_endtag(self, tag):
        if not self._depth or tag in _VOID_TAGS:
            return
        if tag == "a" and self._anchor is not None:
            self.titles.append("".join(self._anchor).strip())
            self._anchor = None
        self._depth -= 1
        if not self._depth:
            self._closed = True

    def handle_data(self, data):
        if self._anchor is not None:
            self._anchor.append(data)


def parse_search_results(html: str) -> list[str]:
    """Return the anchor texts of the search page's results container.

    Raises:
        ProtocolError: if the page has no ``results`` container at all.
    """
    parser = _SearchResultsParser()
    parser.feed(html)
    parser.close()
    if not parser.found_container:
        raise ProtocolError("Search page has no results container")
    return parser.titles


def sanitize_title(title: str) -> str:
    """Turn a model-chosen heading into an article path segment."""
    return title.replace("*", "").replace(" ", "_")


class KiwixClient:
    """Search and fetch articles from one ZIM collection."""

    def __init__(
        self,
        settings: WikiSettings,
        http_client: httpx.AsyncClient | None = None,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self._settings = settings
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def search_url(self, query: str) -> str:
        return (
            f"{self._settings.base_url}/search?books.name={self._settings.zim_name}"
            f"&pattern={quote(query, safe='')}"
        )

    def content_url(self, title: str) -> str:
        return (
            f"{self._settings.base_url}/content/{self._settings.zim_name}/A/"
            f"{quote(sanitize_title(title), safe='/')}"
        )

    async def _get(self, url: str, operation: str) -> str:
        t0 = time.perf_counter()
        try:
            response = await self._client.get(url)
            if not response.is_success:
                raise UpstreamError(
                    f"Mirror returned {response.status_code} for {url}",
                    status_code=response.status_code,
                    url=url,
                )
        except httpx.RequestError as exc:
            metrics.record_failure(
                "kiwix", operation, error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
            raise NetworkError(f"Could not reach mirror at {url}: {exc}", url=url) from exc
        except NeoChatError as exc:
            metrics.record_failure(
                "kiwix", operation, error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
            raise
        metrics.record_success(
            "kiwix", operation, latency_ms=(time.perf_counter() - t0) * 1000,
        )
        return response.text

    async def search(self, query: str) -> list[str]:
        """Return candidate article titles for *query*, in page order."""
        html = await self._get(self.search_url(query), "search")
        titles = parse_search_results(html)
        logger.debug("Search %r matched %d article(s)", query, len(titles))
        return titles

    async def fetch_article(self, title: str) -> str:
        """Return the raw HTML of the article called *title*."""
        return await self._get(self.content_url(title), "content")
