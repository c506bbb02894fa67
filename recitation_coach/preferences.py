"""Persisted user preferences: pause threshold, default translation, memorized list.

WHY: A reciter tunes the pause threshold once and expects it to stick,
picks a favourite translation, and likes to see which passages they have
already learned. None of this needs a database.

HOW: A small JSON file, read on every access and rewritten on every
change. PreferencesStore guards file access with a threading.Lock so the
HTTP server's worker threads cannot interleave writes.

RULES:
- Missing or unreadable file yields defaults with a warning
- pause_threshold_ms is clamped into [1000, 10000] on load
- Setting an out-of-range threshold raises ValueError
- memorized_passages is append-only and never holds duplicates
- Writes go to a temp file first, then replace the real file
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional

from recitation_coach.config import (
    DEFAULT_PAUSE_THRESHOLD_MS,
    PREFERENCES_PATH,
    clamp_pause_threshold,
)
from recitation_coach.core.session import validate_pause_threshold

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    pause_threshold_ms: int = DEFAULT_PAUSE_THRESHOLD_MS
    default_translation: Optional[str] = None
    memorized_passages: List[str] = field(default_factory=list)


class PreferencesStore:
    """JSON-file backed preferences."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else PREFERENCES_PATH
        self._lock = threading.Lock()

    def load(self) -> Preferences:
        with self._lock:
            return self._read()

    def set_pause_threshold(self, value_ms: int) -> Preferences:
        value = validate_pause_threshold(value_ms)
        with self._lock:
            prefs = self._read()
            prefs.pause_threshold_ms = value
            self._write(prefs)
        logger.info("Saved pause threshold %dms", value)
        return prefs

    def set_default_translation(self, bible_id: str | None) -> Preferences:
        """Set the default translation id; None or blank clears it."""
        with self._lock:
            prefs = self._read()
            prefs.default_translation = (bible_id or "").strip() or None
            self._write(prefs)
        return prefs

    def add_memorized(self, citation: str) -> bool:
        """Record ``citation`` as memorized. Returns False if already listed."""
        citation = citation.strip()
        if not citation:
            raise ValueError("citation is required")
        with self._lock:
            prefs = self._read()
            if citation in prefs.memorized_passages:
                return False
            prefs.memorized_passages.append(citation)
            self._write(prefs)
        logger.info("Marked %s as memorized", citation)
        return True

    # ------------------------------------------------------------------
    # File access (caller holds the lock)
    # ------------------------------------------------------------------

    def _read(self) -> Preferences:
        if not self.path.exists():
            return Preferences()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Could not read preferences %s: %s", self.path, exc)
            return Preferences()
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences file %s", self.path)
            return Preferences()

        prefs = Preferences()
        try:
            prefs.pause_threshold_ms = clamp_pause_threshold(
                data.get("pause_threshold_ms", DEFAULT_PAUSE_THRESHOLD_MS)
            )
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid pause threshold in %s", self.path)
        translation = data.get("default_translation")
        if isinstance(translation, str) and translation.strip():
            prefs.default_translation = translation.strip()
        memorized = data.get("memorized_passages")
        if isinstance(memorized, list):
            for item in memorized:
                if isinstance(item, str) and item not in prefs.memorized_passages:
                    prefs.memorized_passages.append(item)
        return prefs

    def _write(self, prefs: Preferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(asdict(prefs), indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
