"""Reduce an article's HTML to the plain text of its paragraphs and headings.

Only ``<p>``, ``<h1>``, ``<h2>`` and ``<h3>`` bodies are kept.  The match is a
non-greedy scan up to the closing tag of the same name, on a single line, so
markup nested inside a body survives verbatim and entities stay encoded.
That is a known limitation; callers feed the result straight into a prompt.
"""

from __future__ import annotations

import re

_TEXT_TAGS = re.compile(
    r"<p[^>]*>(.*?)</p>"
    r"|<h1[^>]*>(.*?)</h1>"
    r"|<h2[^>]*>(.*?)</h2>"
    r"|<h3[^>]*>(.*?)</h3>"
)


def extract_text(html: str) -> str:
    """Whitespace-normalized text of every matched tag body, in document order."""
    tokens: list[str] = []
    for match in _TEXT_TAGS.finditer(html):
        for body in match.groups():
            if body is not None:
                tokens.extend(body.split())
    return " ".join(tokens)
