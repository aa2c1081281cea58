"""Append-only transcript of finalized messages, one JSON line each.

Files are keyed by conversation id: ``{directory}/{conversation_id}.jsonl``.
Writing the transcript is best effort; a failure is logged and the turn
carries on.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from neo_chat.messages import Message

logger = logging.getLogger(__name__)


class TranscriptLog:
    def __init__(self, directory: str | Path):
        self._directory = Path(directory)

    def path_for(self, conversation_id: str) -> Path:
        return self._directory / f"{conversation_id}.jsonl"

    def append(self, conversation_id: str, message: Message) -> bool:
        """Write *message*; returns ``False`` if it could not be persisted."""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **message.to_wire(),
        }
        path = self.path_for(conversation_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as exc:
            logger.warning("Could not append to transcript %s: %s", path, exc)
            return False
        return True

    def read(self, conversation_id: str) -> list[Message]:
        """Load a transcript back, skipping lines that do not parse."""
        path = self.path_for(conversation_id)
        if not path.exists():
            return []
        messages: list[Message] = []
        for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip():
                continue
            try:
                data = json.loads(line)
                messages.append(Message(role=data["role"], content=data["content"]))
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable line %d in %s", lineno, path)
        return messages
