"""Sustained-pause detection with a debounced reset trigger.

WHY: When a reciter loses their place and goes quiet, the most useful
thing the coach can do is beep and start matching again from the top.
Recognizers also produce noise results and timers jitter, so the trigger
must fire once per pause and must not fire again straight after a reset.

HOW: A three-state machine driven by explicit millisecond timestamps:

  idle ──start()──▶ watching ──check() fires──▶ resetting
                       ▲                            │
                       └──────complete_reset()──────┘

check() is called on every tick with the current time and whether the
session has any transcript. It reports True exactly when a reset should
begin. The owner plays its alert, clears its state, then calls
complete_reset(), which restarts the clock and opens a cooldown window
during which the reset flag stays armed.

RULES:
- Fires when elapsed >= threshold AND transcript non-empty AND not armed
- Armed flag re-disarms when the cooldown (1000 ms) has passed
- Outside the cooldown, elapsed < threshold * 0.5 disarms early
  ("user resumed speaking")
- An accepted word restarts the clock and disarms outside the cooldown
- stop() returns to idle from any state and clears the cooldown
- No timers live here; the caller owns the tick loop
"""

from __future__ import annotations

import enum
import logging

from recitation_coach.config import (
    DEFAULT_PAUSE_THRESHOLD_MS,
    EARLY_DISARM_RATIO,
    RESET_COOLDOWN_MS,
)

logger = logging.getLogger(__name__)


class MonitorState(str, enum.Enum):
    """Lifecycle of the silence monitor."""

    IDLE = "idle"
    WATCHING = "watching"
    RESETTING = "resetting"


class SilenceMonitor:
    """Debounced pause detector for one session.

    RULES:
    - pause_threshold_ms: silence needed before a reset (validated by owner)
    - cooldown_ms: how long the flag stays armed after a completed reset
    - All times are milliseconds on the owner's clock
    """

    def __init__(
        self,
        pause_threshold_ms: int = DEFAULT_PAUSE_THRESHOLD_MS,
        cooldown_ms: int = RESET_COOLDOWN_MS,
    ) -> None:
        self.pause_threshold_ms = pause_threshold_ms
        self.cooldown_ms = cooldown_ms
        self.state = MonitorState.IDLE
        self.armed = False
        self.last_word_ms = 0.0
        self._cooldown_until: float | None = None

    @property
    def cooling_down(self) -> bool:
        return self._cooldown_until is not None

    def start(self, now_ms: float) -> None:
        self.state = MonitorState.WATCHING
        self.armed = False
        self.last_word_ms = now_ms
        self._cooldown_until = None

    def stop(self) -> None:
        if self.state is not MonitorState.IDLE:
            logger.debug("Silence monitor stopped from state %s", self.state.value)
        self.state = MonitorState.IDLE
        self.armed = False
        self._cooldown_until = None

    def elapsed_ms(self, now_ms: float) -> float:
        if self.state is MonitorState.IDLE:
            return 0.0
        return max(0.0, now_ms - self.last_word_ms)

    def mark_word(self, now_ms: float) -> None:
        """Record an accepted, word-bearing final fragment."""
        self.last_word_ms = now_ms
        if not self.cooling_down:
            self.armed = False

    def restart_clock(self, now_ms: float) -> None:
        """Restart the pause clock without touching the armed flag."""
        self.last_word_ms = now_ms

    def check(self, now_ms: float, has_transcript: bool) -> bool:
        """Evaluate one tick. Returns True when a reset must begin now.

        When True is returned the monitor has moved to RESETTING and the
        caller must finish with complete_reset().
        """
        if self.state is not MonitorState.WATCHING:
            return False

        if self._cooldown_until is not None:
            if now_ms < self._cooldown_until:
                return False
            self._cooldown_until = None
            self.armed = False

        elapsed = now_ms - self.last_word_ms
        if elapsed >= self.pause_threshold_ms and has_transcript and not self.armed:
            self.armed = True
            self.state = MonitorState.RESETTING
            logger.info(
                "Pause threshold exceeded: %.0fms >= %dms",
                elapsed,
                self.pause_threshold_ms,
            )
            return True

        if elapsed < self.pause_threshold_ms * EARLY_DISARM_RATIO and self.armed:
            self.armed = False
        return False

    def complete_reset(self, now_ms: float) -> None:
        """Finish a reset: restart the clock and open the cooldown window.

        If the owner stopped while the reset was in flight the monitor
        stays idle.
        """
        if self.state is MonitorState.IDLE:
            return
        self.state = MonitorState.WATCHING
        self.last_word_ms = now_ms
        self._cooldown_until = now_ms + self.cooldown_ms
