"""Retrieval-augmented answers from an offline encyclopedia mirror.

Pipeline, one run per turn:

  1. **query expansion**  — tool call on the ``wiki-search`` persona turns the
                            latest user message into independent queries
  2. **article search**   — each query hits the mirror, one after another
  3. **best selection**   — ``wiki-best`` picks one heading among all hits
  4. **content fetch**    — the chosen article is fetched and reduced to text
  5. **synthesis**        — ``wiki-resume`` answers from that text alone

Any failure aborts the run; partial results are thrown away and nothing is
returned.  Search queries run sequentially on purpose.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from neo_chat.errors import MissingFieldError, ProtocolError
from neo_chat.messages import Message, Role
from neo_chat.personas import PersonaConfig
from neo_chat.prompts import (
    SYNTHESIS_CONTENT_TEMPLATE,
    SYNTHESIS_QUERY_TEMPLATE,
    build_heading_prompt,
)
from neo_chat.services.extractor import extract_text
from neo_chat.services.kiwix_client import KiwixClient
from neo_chat.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

QUERIES_FIELD = "queries"


class WikipediaHandler:
    name = "wikipedia"

    def __init__(
        self,
        llm: LLMClient,
        kiwix: KiwixClient,
        *,
        search_persona: PersonaConfig,
        best_persona: PersonaConfig,
        resume_persona: PersonaConfig,
    ):
        self._llm = llm
        self._kiwix = kiwix
        self._search = search_persona
        self._best = best_persona
        self._resume = resume_persona

    async def __call__(self, messages: Sequence[Message]) -> str:
        user_query = _latest_user_message(messages)

        queries = await self.expand_query(user_query)
        titles = await self.search_articles(queries)
        best = await self.select_article(user_query.content, titles)
        content = await self.fetch_content(best)
        return await self.synthesize(user_query.content, content)

    # ── Stages ───────────────────────────────────────────────────────

    async def expand_query(self, user_query: Message) -> list[str]:
        """Stage 1: ask for a list of independent search strings."""
        context = [Message.system(self._search.system_prompt), user_query]
        result = await self._llm.complete_tool(context, self._search)
        queries = result.first_argument(QUERIES_FIELD)
        if queries is None:
            raise MissingFieldError(f"arguments.{QUERIES_FIELD}")
        if not isinstance(queries, list) or not all(isinstance(q, str) for q in queries):
            raise ProtocolError(
                f"arguments.{QUERIES_FIELD} must be a list of strings, got {queries!r}"
            )
        if not queries:
            raise MissingFieldError(
                f"arguments.{QUERIES_FIELD}", "Query expansion produced no queries",
            )
        logger.info("Expanded query into %d search(es): %s", len(queries), queries)
        return queries

    async def search_articles(self, queries: Sequence[str]) -> list[str]:
        """Stage 2: flat list of candidate titles, in query then page order."""
        titles: list[str] = []
        for query in queries:
            titles.extend(await self._kiwix.search(query))
        if not titles:
            raise MissingFieldError("search results", "No article matched any query")
        logger.info("Collected %d candidate article(s)", len(titles))
        return titles

    async def select_article(self, query: str, titles: Sequence[str]) -> str:
        """Stage 3: let the model pick one heading among *titles*."""
        context = [
            Message.system(self._best.system_prompt),
            Message.user(build_heading_prompt(query, list(titles))),
        ]
        choice = (await self._llm.complete_streaming(context, self._best)).strip()
        if not choice:
            raise MissingFieldError("selected heading", "Model did not choose an article")
        logger.info("Selected article %r", choice)
        return choice

    async def fetch_content(self, title: str) -> str:
        """Stage 4: article HTML reduced to plain text."""
        html = await self._kiwix.fetch_article(title)
        content = extract_text(html)
        logger.debug("Extracted %d chars from %r", len(content), title)
        return content

    async def synthesize(self, query: str, content: str) -> str:
        """Stage 5: fresh three-message context, history not included."""
        context = [
            Message.system(self._resume.system_prompt),
            Message.user(SYNTHESIS_QUERY_TEMPLATE.format(query=query)),
            Message.user(SYNTHESIS_CONTENT_TEMPLATE.format(content=content)),
        ]
        return await self._llm.complete_streaming(context, self._resume)


def _latest_user_message(messages: Sequence[Message]) -> Message:
    for message in reversed(messages):
        if message.role is Role.USER:
            return message
    raise MissingFieldError("user message", "No user message to look up")
