"""Tests for the message and conversation model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from neo_chat.messages import Conversation, Message, Role


class TestMessage:
    def test_wire_format(self):
        assert Message.system("s").to_wire() == {"role": "system", "content": "s"}

    def test_is_immutable(self):
        message = Message.user("hello")
        with pytest.raises(ValidationError):
            message.content = "changed"

    def test_display_names_the_speaker(self):
        assert str(Message.user("hi")) == "You: hi"
        assert str(Message.assistant("hello")) == "Néo AI: hello"


class TestConversation:
    def test_append_preserves_order(self):
        conversation = Conversation()
        conversation.append(Role.USER, "a")
        conversation.append(Role.ASSISTANT, "b")

        assert [m.content for m in conversation.messages] == ["a", "b"]
        assert len(conversation) == 2

    def test_snapshot_is_not_affected_by_later_appends(self):
        conversation = Conversation()
        conversation.append(Role.USER, "a")
        snapshot = conversation.messages
        conversation.append(Role.ASSISTANT, "b")

        assert len(snapshot) == 1

    def test_latest_by_role(self):
        conversation = Conversation()
        conversation.append(Role.USER, "first")
        conversation.append(Role.ASSISTANT, "reply")
        conversation.append(Role.USER, "second")

        assert conversation.latest(Role.USER).content == "second"
        assert conversation.latest(Role.SYSTEM) is None

    def test_ids_are_unique_unless_given(self):
        assert Conversation().id != Conversation().id
        assert Conversation("fixed").id == "fixed"
