"""CLI entry point for the Néo chat client.

A line-oriented terminal chat.  One asyncio event loop runs for the whole
session; each turn is awaited to completion before the next line is read,
so there is never more than one orchestration in flight.

Usage:
    python -m neo_chat.main                      # normal mode (quiet)
    python -m neo_chat.main --debug              # show pipeline + HTTP logs
    python -m neo_chat.main --conversation ID    # continue a saved transcript

Commands: ``quit`` to exit, ``new`` for a fresh conversation, ``resume`` to
summarize the conversation so far.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import httpx
from dotenv import load_dotenv

from neo_chat.config import (
    NEO_CONFIG_DIR,
    NEO_HISTORY_DIR,
    REQUEST_TIMEOUT_SECONDS,
    WIKI_URL,
    ZIM_NAME,
)
from neo_chat.errors import PersonaConfigError
from neo_chat.messages import Conversation, Role
from neo_chat.orchestrator import Orchestrator, create_orchestrator
from neo_chat.personas import Personas, load_personas
from neo_chat.services.transcript import TranscriptLog

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit", "q")


def _configure_logging(debug: bool = False) -> None:
    """WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("neo_chat").setLevel(logging.DEBUG if debug else logging.INFO)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Néo AI terminal chat")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--config-dir", default=NEO_CONFIG_DIR,
        help="Directory holding the persona documents (default: %(default)s)",
    )
    parser.add_argument(
        "--history-dir", default=NEO_HISTORY_DIR,
        help="Directory for conversation transcripts (default: %(default)s)",
    )
    parser.add_argument(
        "--conversation", metavar="ID",
        help="Continue the conversation saved under this id",
    )
    return parser.parse_args(argv)


def restore_conversation(transcript: TranscriptLog, conversation_id: str) -> Conversation:
    """Rebuild a conversation from its transcript (empty if none exists)."""
    conversation = Conversation(conversation_id)
    for message in transcript.read(conversation_id):
        conversation.append(message.role, message.content)
    logger.info("Restored %d message(s) for %s", len(conversation), conversation_id)
    return conversation


async def handle_input(orchestrator: Orchestrator, user_input: str) -> str:
    """Run one line of input through the orchestrator; returns the text to print."""
    if user_input.lower() == "resume":
        reply = await orchestrator.resume_conversation()
    else:
        reply = await orchestrator.send_message(user_input)
    return str(reply)


async def chat_loop(
    personas: Personas,
    transcript: TranscriptLog,
    *,
    conversation: Conversation | None = None,
) -> None:
    """Read lines from stdin and answer them until the user quits."""
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS) as http_client:
        orchestrator = create_orchestrator(
            personas, http_client, conversation=conversation, transcript=transcript,
        )
        logger.info("Started conversation: %s", orchestrator.conversation.id)

        for message in orchestrator.conversation:
            if message.role is not Role.SYSTEM:
                print(message)

        while True:
            try:
                user_input = (await asyncio.to_thread(input, "You: ")).strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not user_input:
                continue

            if user_input.lower() in EXIT_COMMANDS:
                print("\nGoodbye!")
                break

            if user_input.lower() == "new":
                orchestrator = create_orchestrator(
                    personas, http_client, transcript=transcript,
                )
                print(f"\n>> New conversation started: {orchestrator.conversation.id[:8]}...\n")
                continue

            reply = await handle_input(orchestrator, user_input)
            print(f"\n{reply}\n")


def main(argv: list[str] | None = None) -> int:
    """Run the interactive CLI chat loop."""
    args = _parse_args(argv)

    load_dotenv()
    _configure_logging(debug=args.debug)

    try:
        personas = load_personas(args.config_dir, wiki_url=WIKI_URL, zim_name=ZIM_NAME)
    except PersonaConfigError as exc:
        logger.error("Cannot start: %s", exc)
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    transcript = TranscriptLog(args.history_dir)
    conversation = (
        restore_conversation(transcript, args.conversation) if args.conversation else None
    )

    print("\n" + "=" * 60)
    print("  Néo AI - terminal chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new conversation,")
    print("            'resume' to summarize the conversation.")
    print("=" * 60 + "\n")

    try:
        asyncio.run(chat_loop(personas, transcript, conversation=conversation))
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
