"""Single-call handlers: free chat and conversation summary."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from neo_chat.messages import Message
from neo_chat.personas import PersonaConfig
from neo_chat.services.llm_client import LLMClient

logger = logging.getLogger(__name__)


class ChatHandler:
    """Appends the persona's framing as a user message and streams a reply."""

    name = "chat"

    def __init__(self, llm: LLMClient, persona: PersonaConfig):
        self._llm = llm
        self._persona = persona

    async def __call__(self, messages: Sequence[Message]) -> str:
        working = [*messages, Message.user(self._persona.system_prompt)]
        logger.debug("%s handler invoked — model: %s", self.name, self._persona.model)
        return await self._llm.complete_streaming(working, self._persona)


class ResumeHandler(ChatHandler):
    """Same request shape, bound to the persona that summarizes the dialogue."""

    name = "resume"
