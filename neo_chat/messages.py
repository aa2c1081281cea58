"""Conversation data model.

``Message`` is immutable.  ``Conversation`` is an append-only aggregate: the
only mutation it offers is :meth:`Conversation.append`, so there is no way to
reorder or drop history once it has been sent upstream.
"""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One chat message, serialized upstream as ``{"role", "content"}``."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT, content=content)

    def to_wire(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}

    def __str__(self) -> str:
        speaker = {
            Role.USER: "You",
            Role.SYSTEM: "System",
            Role.ASSISTANT: "Néo AI",
        }[self.role]
        return f"{speaker}: {self.content}"


class Conversation:
    """Ordered, append-only message history for a single dialogue."""

    def __init__(self, conversation_id: str | None = None) -> None:
        self.id = conversation_id or str(uuid.uuid4())
        self._messages: list[Message] = []

    def append(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self._messages.append(message)
        return message

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the history; later appends do not affect it."""
        return tuple(self._messages)

    def latest(self, role: Role) -> Message | None:
        for message in reversed(self._messages):
            if message.role is role:
                return message
        return None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(tuple(self._messages))
