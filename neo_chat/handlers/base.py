"""Common interface for every reply-producing handler."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from neo_chat.messages import Message


class Handler(Protocol):
    """Turns the conversation so far into the assistant's reply text.

    Handlers never mutate the history they receive; they raise a
    :class:`~neo_chat.errors.NeoChatError` subclass on failure.
    """

    name: str

    async def __call__(self, messages: Sequence[Message]) -> str: ...
