"""In-process recognition sources: scripted playback and typed lines.

WHY: Practising without a microphone (or testing without one) still needs
something that behaves like a recognizer: results arriving over time,
runs that end and must be restarted, the occasional failure.

HOW: ScriptedSource replays a list of steps. A step is a batch of
fragments, None (end the current run early), or a SourceError (raise it).
LineInputSource reads lines from a text stream in a worker thread and
yields each non-blank line as one final fragment.

RULES:
- Both sources report finished=True once their input is exhausted
- ScriptedSource resumes after the step that ended the previous run
- LineInputSource never blocks the event loop
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator, Sequence
from typing import List, TextIO, Union

from recitation_coach.core.models import TranscriptFragment
from recitation_coach.sources.base import RecognitionSource, SourceError

logger = logging.getLogger(__name__)

ScriptStep = Union[List[TranscriptFragment], SourceError, None]


def finals(*texts: str) -> List[TranscriptFragment]:
    """Build a batch of final fragments."""
    return [TranscriptFragment(text, is_final=True) for text in texts]


def interims(*texts: str) -> List[TranscriptFragment]:
    """Build a batch of interim fragments."""
    return [TranscriptFragment(text, is_final=False) for text in texts]


class ScriptedSource(RecognitionSource):
    """Replays a fixed script of batches, run ends, and errors.

    Args:
        steps: Batches to deliver, None to end a run, or a SourceError
            to raise.
        delay_ms: Pause before each delivered batch.
        continuous: Value reported as supports_continuous_streaming.
    """

    def __init__(
        self,
        steps: Sequence[ScriptStep],
        delay_ms: float = 0,
        continuous: bool = True,
    ) -> None:
        self._steps = list(steps)
        self._position = 0
        self._delay_s = delay_ms / 1000.0
        self.supports_continuous_streaming = continuous
        self.runs = 0
        self.closed = False

    @property
    def finished(self) -> bool:
        return self._position >= len(self._steps)

    async def stream(self) -> AsyncIterator[List[TranscriptFragment]]:
        self.runs += 1
        while self._position < len(self._steps):
            step = self._steps[self._position]
            self._position += 1
            if step is None:
                return
            if isinstance(step, SourceError):
                raise step
            if self._delay_s:
                await asyncio.sleep(self._delay_s)
            yield list(step)

    async def close(self) -> None:
        self.closed = True


class LineInputSource(RecognitionSource):
    """Treats each typed line as one final recognition result."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdin
        self._eof = False

    @property
    def finished(self) -> bool:
        return self._eof

    async def stream(self) -> AsyncIterator[List[TranscriptFragment]]:
        while True:
            line = await asyncio.to_thread(self._stream.readline)
            if not line:
                logger.debug("Line input reached end of file")
                self._eof = True
                return
            text = line.strip()
            if text:
                yield [TranscriptFragment(text, is_final=True)]
