"""Persona documents: one JSON file per pipeline role.

Layout under the config directory::

    categorize-LLM.json
    chat-LLM.json
    resume-LLM.json
    wiki/wiki-search.json
    wiki/wiki-best.json
    wiki/wiki-resume.json
    wiki/wiki.json          # {"wiki_url": ..., "zim_name": ...}

Each persona document looks like::

    {"url": "http://localhost:11434/api/chat",
     "model": "llama3.1",
     "system_prompt": "...",
     "tools": [...]}            # optional

Everything is validated once at startup; a missing or malformed document
raises :class:`~neo_chat.errors.PersonaConfigError`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from neo_chat.errors import PersonaConfigError

logger = logging.getLogger(__name__)

PERSONA_FILES: dict[str, str] = {
    "categorizer": "categorize-LLM.json",
    "chat": "chat-LLM.json",
    "resume": "resume-LLM.json",
    "wiki_search": "wiki/wiki-search.json",
    "wiki_best": "wiki/wiki-best.json",
    "wiki_resume": "wiki/wiki-resume.json",
}
WIKI_SETTINGS_FILE = "wiki/wiki.json"


def _absolute_http_url(value: str) -> str:
    """Reject URLs httpx could not send a request to."""
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        raise ValueError(f"invalid URL {value!r}: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"expected an absolute http(s) URL, got {value!r}")
    return value


class PersonaConfig(BaseModel):
    """Endpoint, model, prompt and optional tool schema for one role."""

    model_config = ConfigDict(frozen=True)

    url: str
    model: str
    system_prompt: str
    tools: list[dict[str, Any]] | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _absolute_http_url(value)


class WikiSettings(BaseModel):
    """Mirror base URL and the name of the content collection (ZIM book)."""

    model_config = ConfigDict(frozen=True)

    wiki_url: str
    zim_name: str

    @field_validator("wiki_url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _absolute_http_url(value)

    @property
    def base_url(self) -> str:
        return self.wiki_url.rstrip("/")


@dataclass(frozen=True)
class Personas:
    categorizer: PersonaConfig
    chat: PersonaConfig
    resume: PersonaConfig
    wiki_search: PersonaConfig
    wiki_best: PersonaConfig
    wiki_resume: PersonaConfig
    wiki: WikiSettings


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise PersonaConfigError(f"Persona document not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise PersonaConfigError(f"Persona document {path} is not valid JSON: {exc}") from exc


def load_persona(path: str | Path) -> PersonaConfig:
    """Read and validate one persona document."""
    path = Path(path)
    try:
        return PersonaConfig.model_validate(_read_json(path))
    except ValidationError as exc:
        raise PersonaConfigError(f"Persona document {path} is malformed: {exc}") from exc


def load_wiki_settings(
    path: str | Path,
    *,
    wiki_url: str | None = None,
    zim_name: str | None = None,
) -> WikiSettings:
    """Read ``wiki.json``; explicit arguments override the file."""
    path = Path(path)
    data: dict[str, Any] = {}
    if path.exists() or not (wiki_url and zim_name):
        raw = _read_json(path)
        if not isinstance(raw, dict):
            raise PersonaConfigError(f"{path} must contain a JSON object")
        data.update(raw)
    if wiki_url:
        data["wiki_url"] = wiki_url
    if zim_name:
        data["zim_name"] = zim_name
    try:
        return WikiSettings.model_validate(data)
    except ValidationError as exc:
        raise PersonaConfigError(f"Wiki settings {path} are malformed: {exc}") from exc


def load_personas(
    config_dir: str | Path,
    *,
    wiki_url: str | None = None,
    zim_name: str | None = None,
) -> Personas:
    """Load every persona the pipeline needs from *config_dir*."""
    root = Path(config_dir)
    loaded = {role: load_persona(root / name) for role, name in PERSONA_FILES.items()}
    wiki = load_wiki_settings(
        root / WIKI_SETTINGS_FILE, wiki_url=wiki_url, zim_name=zim_name,
    )
    logger.debug(
        "Loaded %d personas from %s (mirror %s, collection %s)",
        len(loaded), root, wiki.base_url, wiki.zim_name,
    )
    return Personas(wiki=wiki, **loaded)
