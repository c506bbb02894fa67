"""Alert sinks for the reset beep and the completion chime.

WHY: The session decides *when* to alert; how an alert is rendered depends
on the host. A terminal rings the bell, the HTTP API queues the cue for the
browser to play, tests just record it. Playback is cosmetic, so a broken
sink must never stall the session.

HOW: AlertSink is a one-method ABC. play() returns once playback has
finished (or been handed off). The session wraps every call so that any
exception is logged and swallowed.

RULES:
- play() may raise; callers treat that as "playback failed", not fatal
- QueueAlertSink.drain() returns and clears pending cues in order
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import List, TextIO

from recitation_coach.core.models import AlertCue


class AlertSink(ABC):
    """Destination for session alert cues."""

    @abstractmethod
    def play(self, cue: AlertCue) -> None:
        """Play ``cue``, returning when playback completes."""


class NullAlertSink(AlertSink):
    """Discards every cue."""

    def play(self, cue: AlertCue) -> None:
        return None


class QueueAlertSink(AlertSink):
    """Collects cues so a remote client can play them later."""

    def __init__(self) -> None:
        self._pending: List[AlertCue] = []

    def play(self, cue: AlertCue) -> None:
        self._pending.append(cue)

    def drain(self) -> List[AlertCue]:
        cues, self._pending = self._pending, []
        return cues


class TerminalBellAlertSink(AlertSink):
    """Rings the terminal bell: one for a reset, three for completion."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stderr

    def play(self, cue: AlertCue) -> None:
        bells = 3 if cue is AlertCue.COMPLETION else 1
        self._stream.write("\a" * bells)
        self._stream.flush()
