"""Shared test fixtures for the recitation_coach test suite.

WHY: The engine is driven by time and by alert side effects. Tests need a
clock they can move by hand and a sink that records what was played, so
timing rules can be checked exactly without sleeping.

HOW: FakeClock is a callable returning milliseconds; RecordingAlertSink
keeps every cue in order. Fixtures provide both plus the John 3:16 and
Genesis 1:1 references used across modules.

RULES:
- No test sleeps for real time when checking silence behaviour
- No test touches the network; outbound HTTP uses httpx.MockTransport
"""

from __future__ import annotations

from typing import List

import pytest

from recitation_coach.core.alerts import AlertSink
from recitation_coach.core.models import AlertCue, ReferenceText

JOHN_3_16 = (
    "For God so loved the world, that he gave his one and only Son, that "
    "whoever believes in him should not perish, but have eternal life."
)

SIX_WORDS = "For God so loved the world."


class FakeClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingAlertSink(AlertSink):
    def __init__(self) -> None:
        self.cues: List[AlertCue] = []

    def play(self, cue: AlertCue) -> None:
        self.cues.append(cue)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def alerts() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def john_3_16() -> ReferenceText:
    return ReferenceText(citation="John 3:16", body=JOHN_3_16, translation="WEB")


@pytest.fixture
def six_words() -> ReferenceText:
    return ReferenceText(citation="John 3:16a", body=SIX_WORDS)
