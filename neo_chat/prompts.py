"""Prompt templates used inside the encyclopedia pipeline.

The persona documents own the system prompts; these templates only frame
the per-turn user messages the pipeline builds itself.
"""

from __future__ import annotations

HEADING_SEPARATOR = ", "

BEST_HEADING_TEMPLATE = (
    "The user's query is: {query}. Here are the headings:\n"
    "{headings}\n\n"
    "Please select the most relevant heading. "
    "Output the heading only and nothing else."
)

SYNTHESIS_QUERY_TEMPLATE = "The users query is: {query}"
SYNTHESIS_CONTENT_TEMPLATE = "The search results are: {content}"


def build_heading_prompt(query: str, titles: list[str]) -> str:
    """Ask the model to pick exactly one of *titles* for *query*."""
    return BEST_HEADING_TEMPLATE.format(
        query=query, headings=HEADING_SEPARATOR.join(titles),
    )
