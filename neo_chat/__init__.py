"""Néo AI — a terminal chat client that routes each turn by intent.

Architecture Overview
=====================

Every user turn goes through a small state machine owned by the
:class:`~neo_chat.orchestrator.Orchestrator`:

1. **categorize** — a tool-call completion on the categorizer persona labels
   the conversation (``chat``, ``resume``, ``wikipedia``).
2. **dispatch**   — exact-match lookup of the handler for that label; any
   unknown label falls back to ``chat``.
3. **handle**     — the handler produces the reply text:

   - ``chat``      streams a plain answer,
   - ``resume``    streams a summary of the conversation,
   - ``wikipedia`` expands the question into searches, queries an offline
     Kiwix mirror, picks one article, extracts its text and answers from it.

Errors at any stage become a visible assistant message; the process only
stops on bad persona configuration at startup.

Package Structure
-----------------
- ``neo_chat/config.py``        — environment / ``.env`` settings
- ``neo_chat/personas.py``      — persona documents (one JSON per role)
- ``neo_chat/messages.py``      — ``Message`` and the append-only ``Conversation``
- ``neo_chat/categorizer.py``   — intent classification
- ``neo_chat/orchestrator.py``  — routing state machine
- ``neo_chat/handlers/``        — chat, resume and encyclopedia handlers
- ``neo_chat/services/``        — HTTP clients, HTML extraction, transcript, metrics
- ``neo_chat/main.py``          — CLI chat loop
"""
