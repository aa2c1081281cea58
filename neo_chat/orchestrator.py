"""Turn orchestration: categorize, dispatch, handle, append.

State machine, re-entered fresh for every user turn::

    IDLE → CATEGORIZING → DISPATCHING → HANDLING → IDLE
                 │
                 └── categorizer error → assistant error message → IDLE

Dispatch is an exact-match table lookup.  A category missing from the table
(typo, hallucination, new persona value) goes to the ``chat`` handler; that is
the routing contract, not an error.

The orchestrator is the only writer of the :class:`Conversation` it is given
and appends exactly two messages per user turn (user + assistant), however
many requests the handler makes internally.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum

import httpx

from neo_chat.categorizer import Categorizer
from neo_chat.errors import NeoChatError, TurnInProgressError
from neo_chat.handlers import ChatHandler, Handler, ResumeHandler, WikipediaHandler
from neo_chat.messages import Conversation, Message, Role
from neo_chat.personas import Personas
from neo_chat.services.kiwix_client import KiwixClient
from neo_chat.services.llm_client import LLMClient
from neo_chat.services.transcript import TranscriptLog

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "chat"
RESUME_CATEGORY = "resume"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    CATEGORIZING = "categorizing"
    DISPATCHING = "dispatching"
    HANDLING = "handling"


class Orchestrator:
    def __init__(
        self,
        conversation: Conversation,
        categorizer: Categorizer,
        handlers: Mapping[str, Handler],
        *,
        default_category: str = DEFAULT_CATEGORY,
        transcript: TranscriptLog | None = None,
    ):
        if default_category not in handlers:
            raise ValueError(f"No handler registered for default category {default_category!r}")
        self.conversation = conversation
        self.state = OrchestratorState.IDLE
        self._categorizer = categorizer
        self._handlers = dict(handlers)
        self._default_category = default_category
        self._transcript = transcript

    def route(self, category: str) -> Handler:
        """Exact-match lookup with fallback to the default handler."""
        handler = self._handlers.get(category)
        if handler is None:
            logger.info(
                "Unknown category %r, falling back to %r", category, self._default_category,
            )
            handler = self._handlers[self._default_category]
        return handler

    async def send_message(self, text: str) -> Message:
        """Run one full turn for *text* and return the assistant's message."""
        self._ensure_idle()
        try:
            self._append(Role.USER, text)

            self.state = OrchestratorState.CATEGORIZING
            try:
                category = await self._categorizer.categorize(self.conversation)
            except NeoChatError as exc:
                logger.warning("Categorization failed: %s", exc)
                return self._append(Role.ASSISTANT, str(exc))

            self.state = OrchestratorState.DISPATCHING
            handler = self.route(category)
            return await self._handle(handler)
        finally:
            self.state = OrchestratorState.IDLE

    async def resume_conversation(self) -> Message:
        """Summarize the conversation without categorizing a new turn."""
        self._ensure_idle()
        try:
            self.state = OrchestratorState.DISPATCHING
            return await self._handle(self.route(RESUME_CATEGORY))
        finally:
            self.state = OrchestratorState.IDLE

    # ── Internal ─────────────────────────────────────────────────────

    def _ensure_idle(self) -> None:
        if self.state is not OrchestratorState.IDLE:
            raise TurnInProgressError(
                f"A turn is already in progress (state: {self.state.value})"
            )

    async def _handle(self, handler: Handler) -> Message:
        self.state = OrchestratorState.HANDLING
        logger.debug("Dispatching to %s handler", handler.name)
        try:
            reply = await handler(self.conversation.messages)
        except NeoChatError as exc:
            logger.warning("%s handler failed: %s", handler.name, exc)
            return self._append(Role.ASSISTANT, str(exc))
        return self._append(Role.ASSISTANT, reply)

    def _append(self, role: Role, content: str) -> Message:
        message = self.conversation.append(role, content)
        if self._transcript is not None:
            self._transcript.append(self.conversation.id, message)
        return message


def create_orchestrator(
    personas: Personas,
    http_client: httpx.AsyncClient,
    *,
    conversation: Conversation | None = None,
    transcript: TranscriptLog | None = None,
) -> Orchestrator:
    """Wire every handler for *personas* onto one shared HTTP client."""
    llm = LLMClient(http_client)
    kiwix = KiwixClient(personas.wiki, http_client)
    handlers: dict[str, Handler] = {
        "chat": ChatHandler(llm, personas.chat),
        "resume": ResumeHandler(llm, personas.resume),
        "wikipedia": WikipediaHandler(
            llm,
            kiwix,
            search_persona=personas.wiki_search,
            best_persona=personas.wiki_best,
            resume_persona=personas.wiki_resume,
        ),
    }
    orchestrator = Orchestrator(
        conversation if conversation is not None else Conversation(),
        Categorizer(llm, personas.categorizer),
        handlers,
        transcript=transcript,
    )
    logger.debug(
        "Orchestrator ready — conversation %s, categories: %s",
        orchestrator.conversation.id, ", ".join(handlers),
    )
    return orchestrator
