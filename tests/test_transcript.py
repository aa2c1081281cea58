"""Tests for the append-only transcript log."""

from __future__ import annotations

import json

from neo_chat.messages import Message, Role
from neo_chat.services.transcript import TranscriptLog


class TestTranscriptLog:
    def test_appends_one_json_line_per_message(self, tmp_path):
        log = TranscriptLog(tmp_path / "history")

        assert log.append("abc", Message.user("hello"))
        assert log.append("abc", Message.assistant("hi"))

        lines = (tmp_path / "history" / "abc.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["role"] == "user"
        assert first["content"] == "hello"
        assert "timestamp" in first

    def test_conversations_are_kept_apart(self, tmp_path):
        log = TranscriptLog(tmp_path)
        log.append("one", Message.user("a"))
        log.append("two", Message.user("b"))

        assert [m.content for m in log.read("one")] == ["a"]
        assert [m.content for m in log.read("two")] == ["b"]

    def test_read_round_trips_roles(self, tmp_path):
        log = TranscriptLog(tmp_path)
        log.append("c", Message.user("q"))
        log.append("c", Message.assistant("a"))

        assert [m.role for m in log.read("c")] == [Role.USER, Role.ASSISTANT]

    def test_read_missing_transcript_is_empty(self, tmp_path):
        assert TranscriptLog(tmp_path).read("nope") == []

    def test_read_skips_corrupt_lines(self, tmp_path):
        path = tmp_path / "c.jsonl"
        path.write_text(
            '{"role": "user", "content": "ok"}\nnot json\n{"role": "robot", "content": "x"}\n',
            encoding="utf-8",
        )
        assert [m.content for m in TranscriptLog(tmp_path).read("c")] == ["ok"]

    def test_unwritable_directory_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory", encoding="utf-8")
        log = TranscriptLog(blocker)

        assert log.append("c", Message.user("hello")) is False
