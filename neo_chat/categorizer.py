"""Intent classification for each user turn.

The categorizer persona exposes a tool whose ``category`` argument is one of
the routing categories (``chat``, ``resume``, ``wikipedia``, ...).  The value
is cleaned up but never validated here: the orchestrator's dispatch table
decides what an unknown category means.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from neo_chat.messages import Conversation, Message
from neo_chat.personas import PersonaConfig
from neo_chat.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

CATEGORY_FIELD = "category"
_STRIP_CHARS = " \t\r\n\"'"


def normalize_category(value: Any) -> str:
    """Render a tool argument as a bare category name.

    Models sometimes wrap the value in an extra pair of quotes
    (``"\\"wikipedia\\""``); those are removed along with whitespace.
    """
    text = value if isinstance(value, str) else json.dumps(value)
    return text.strip(_STRIP_CHARS)


class Categorizer:
    def __init__(
        self,
        llm: LLMClient,
        persona: PersonaConfig,
        *,
        field: str = CATEGORY_FIELD,
    ):
        self._llm = llm
        self._persona = persona
        self._field = field

    async def categorize(self, conversation: Conversation) -> str:
        """Classify the whole conversation; errors propagate to the caller."""
        context = [Message.system(self._persona.system_prompt), *conversation.messages]
        result = await self._llm.complete_tool(context, self._persona)
        raw = result.first_argument(self._field)
        category = normalize_category(raw)
        logger.info("Categorized turn as %r (raw: %r)", category, raw)
        return category
