"""Configuration constants, engine tuning values, and .env loading.

WHY: Centralizes every configurable value so it is easy to find, update,
and override. Service URLs and model names come from the environment;
engine tuning values (lookahead window, pause bounds, tick interval) are
plain module constants because changing them changes matching behaviour.

HOW: python-dotenv loads the .env file on import. Constants are defined
at module level. load_openai_key() and load_api_bible_key() read the
credentials lazily so tests can patch the environment.

RULES:
- API keys are loaded from .env via python-dotenv, never hardcoded
- Pause threshold is always within [MIN_PAUSE_THRESHOLD_MS, MAX_PAUSE_THRESHOLD_MS]
- The API.Bible key is optional; the free bible-api.com fallback needs none
- The OpenAI key is optional for the engine; without it feedback degrades
  to the local heuristic
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (where the app is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Live alignment engine
# ---------------------------------------------------------------------------

LOOKAHEAD_WINDOW = 3
"""How many live tokens past the cursor are searched for a reference match."""

FUTURE_REFERENCE_WINDOW = 3
"""How many reference tokens after the current one count as "future" words."""

RECENT_LIVE_WINDOW = 5
"""How many trailing live tokens the completion detector inspects."""

MIN_PAUSE_THRESHOLD_MS = 1000
MAX_PAUSE_THRESHOLD_MS = 10000
DEFAULT_PAUSE_THRESHOLD_MS = int(os.getenv("DEFAULT_PAUSE_THRESHOLD_MS", "3000"))

SILENCE_TICK_MS = 200
RESET_COOLDOWN_MS = 1000
EARLY_DISARM_RATIO = 0.5


def clamp_pause_threshold(value_ms: int) -> int:
    """Clamp a pause threshold into the supported range."""
    return max(MIN_PAUSE_THRESHOLD_MS, min(MAX_PAUSE_THRESHOLD_MS, int(value_ms)))


# ---------------------------------------------------------------------------
# Reference text provider
# ---------------------------------------------------------------------------

API_BIBLE_BASE_URL = os.getenv("API_BIBLE_BASE_URL", "https://rest.api.bible/v1")
FREE_BIBLE_BASE_URL = os.getenv("FREE_BIBLE_BASE_URL", "https://bible-api.com")
DEFAULT_BIBLE_ID = os.getenv("DEFAULT_BIBLE_ID", "9879dbb7cfe39e4d-01")
DEFAULT_TRANSLATION_NAME = "World English Bible"

_API_BIBLE_PLACEHOLDER = "your_api_bible_key_here"


def load_api_bible_key() -> str | None:
    """Load the API.Bible key from the environment.

    WHY: API.Bible gives access to many translations but requires a key.
    Without one, the provider silently uses bible-api.com instead.

    HOW: Reads API_BIBLE_KEY from os.environ (populated by python-dotenv).

    RULES:
    - Returns None when the key is missing, blank, or still the
      placeholder value shipped in the example .env
    """
    key = os.getenv("API_BIBLE_KEY", "").strip()
    if not key or key == _API_BIBLE_PLACEHOLDER:
        return None
    return key


# ---------------------------------------------------------------------------
# Feedback generator
# ---------------------------------------------------------------------------

OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))


def load_openai_key() -> str:
    """Load the OpenAI API key from the environment.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("OPENAI_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "OpenAI API key not configured. "
            "Add OPENAI_API_KEY to the .env file in the app folder."
        )
    return key


# ---------------------------------------------------------------------------
# Persisted preferences
# ---------------------------------------------------------------------------

PREFERENCES_PATH = Path(
    os.getenv(
        "RECITATION_COACH_PREFERENCES",
        str(Path.home() / ".recitation_coach" / "preferences.json"),
    )
).expanduser()
