"""Reply handlers, one per routing category.

    chat       — ChatHandler: plain streamed answer (also the fallback)
    resume     — ResumeHandler: summary of the conversation so far
    wikipedia  — WikipediaHandler: five-stage encyclopedia lookup
"""

from neo_chat.handlers.base import Handler
from neo_chat.handlers.chat import ChatHandler, ResumeHandler
from neo_chat.handlers.wikipedia import WikipediaHandler

__all__ = ["ChatHandler", "Handler", "ResumeHandler", "WikipediaHandler"]
