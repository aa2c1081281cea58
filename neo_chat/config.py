"""Centralized configuration for the Néo chat client.

Resolution order (per variable):
  1. Environment variable
  2. ``.env`` file in the working directory
  3. Built-in default

Persona documents are *not* read here; they live under ``NEO_CONFIG_DIR``
and are loaded once at startup by :mod:`neo_chat.personas`.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _float_env(name: str, default: float) -> float:
    """Read a float from the environment, falling back on bad input."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


# ── Persona documents ───────────────────────────────────────────────
NEO_CONFIG_DIR: str = os.getenv("NEO_CONFIG_DIR", "config")

# ── Transcript log ──────────────────────────────────────────────────
NEO_HISTORY_DIR: str = os.getenv("NEO_HISTORY_DIR", "history")

# ── HTTP ────────────────────────────────────────────────────────────
# Applies to connect and read; a local model may take minutes to stream.
REQUEST_TIMEOUT_SECONDS: float = _float_env("NEO_REQUEST_TIMEOUT", 300.0)

# ── Encyclopedia mirror (overrides config/wiki/wiki.json) ───────────
WIKI_URL: str | None = os.getenv("WIKI_URL") or None
ZIM_NAME: str | None = os.getenv("ZIM_NAME") or None
