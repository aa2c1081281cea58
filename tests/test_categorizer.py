"""Tests for intent categorization."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from conftest import make_persona, tool_body

from neo_chat.categorizer import Categorizer, normalize_category
from neo_chat.errors import MissingFieldError, MissingToolCallError, UpstreamError
from neo_chat.messages import Conversation, Role
from neo_chat.services.llm_client import LLMClient


def _conversation(*turns: tuple[Role, str]) -> Conversation:
    conversation = Conversation("test")
    for role, content in turns:
        conversation.append(role, content)
    return conversation


class TestNormalizeCategory:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ('"wikipedia"', "wikipedia"),
            ("  chat\n", "chat"),
            ("'resume'", "resume"),
            ("wikipedia", "wikipedia"),
        ],
    )
    def test_strips_quotes_and_whitespace(self, raw, expected):
        assert normalize_category(raw) == expected

    def test_non_string_value_is_rendered(self):
        assert normalize_category(42) == "42"


class TestCategorizer:
    def test_quoted_category_is_unwrapped(self, mock_http):
        llm = LLMClient(
            mock_http(lambda request: httpx.Response(200, json=tool_body(category='"wikipedia"')))
        )
        categorizer = Categorizer(llm, make_persona("CATEGORIZE"))

        category = asyncio.run(
            categorizer.categorize(_conversation((Role.USER, "Tell me about volcanoes")))
        )
        assert category == "wikipedia"

    def test_context_is_system_prompt_plus_full_conversation(self, mock_http):
        seen: list[dict] = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json=tool_body(category="chat"))

        categorizer = Categorizer(LLMClient(mock_http(handler)), make_persona("CATEGORIZE"))
        conversation = _conversation(
            (Role.USER, "hello"), (Role.ASSISTANT, "hi!"), (Role.USER, "how are you?"),
        )
        asyncio.run(categorizer.categorize(conversation))

        assert seen[0]["messages"] == [
            {"role": "system", "content": "CATEGORIZE"},
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi!"},
            {"role": "user", "content": "how are you?"},
        ]
        # The conversation itself is untouched.
        assert len(conversation) == 3

    def test_unknown_category_passes_through(self, mock_http):
        llm = LLMClient(
            mock_http(lambda request: httpx.Response(200, json=tool_body(category="poetry")))
        )
        categorizer = Categorizer(llm, make_persona())

        assert asyncio.run(categorizer.categorize(_conversation((Role.USER, "x")))) == "poetry"

    def test_custom_field_name(self, mock_http):
        llm = LLMClient(
            mock_http(lambda request: httpx.Response(200, json=tool_body(route="resume")))
        )
        categorizer = Categorizer(llm, make_persona(), field="route")

        assert asyncio.run(categorizer.categorize(_conversation((Role.USER, "x")))) == "resume"

    def test_missing_category_field_raises(self, mock_http):
        llm = LLMClient(
            mock_http(lambda request: httpx.Response(200, json=tool_body(other="chat")))
        )
        categorizer = Categorizer(llm, make_persona())

        with pytest.raises(MissingFieldError):
            asyncio.run(categorizer.categorize(_conversation((Role.USER, "x"))))

    def test_model_without_tool_support_propagates(self, mock_http):
        llm = LLMClient(
            mock_http(lambda request: httpx.Response(200, json={"message": {"content": "chat"}}))
        )
        categorizer = Categorizer(llm, make_persona())

        with pytest.raises(MissingToolCallError):
            asyncio.run(categorizer.categorize(_conversation((Role.USER, "x"))))

    def test_upstream_error_propagates_unchanged(self, mock_http):
        llm = LLMClient(mock_http(lambda request: httpx.Response(503)))
        categorizer = Categorizer(llm, make_persona())

        with pytest.raises(UpstreamError):
            asyncio.run(categorizer.categorize(_conversation((Role.USER, "x"))))
