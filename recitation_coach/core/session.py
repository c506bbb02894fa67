"""Session controller for one live recitation.

WHY: Fragment ingestion, noise filtering, duplicate suppression, live
alignment, completion detection, and pause resets all read and write the
same handful of fields. Keeping them on one object, mutated only through
its methods, means a multi-user host can run many sessions side by side
with no hidden shared state.

HOW: RecitationSession owns the accumulated transcript, the latest
interim text, the latest alignment, a SilenceMonitor, and a
CompletionDetector. Each public method runs to completion before the next
event is handled; the host (CLI loop, HTTP server) serializes fragment
delivery, timer ticks, and user commands onto one event loop.

RULES:
- The accumulated transcript only grows by append or is cleared whole
- A final fragment is speech only if it has an ASCII letter or digit and
  its trimmed length is > 1; noise neither accumulates nor restarts the
  silence clock
- A final fragment that the transcript already ends with, or that starts
  with the transcript's last 50 characters, is a recognizer re-emission
  and is dropped
- Alignment and completion run over (transcript + " " + interim).strip()
- stop() is idempotent and returns the silence monitor to idle
- Alert playback failures are logged and never block a reset
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Callable, Iterable

from recitation_coach.config import (
    DEFAULT_PAUSE_THRESHOLD_MS,
    MAX_PAUSE_THRESHOLD_MS,
    MIN_PAUSE_THRESHOLD_MS,
)
from recitation_coach.core.aligner import align
from recitation_coach.core.alerts import AlertSink, NullAlertSink
from recitation_coach.core.completion import CompletionDetector
from recitation_coach.core.models import (
    AlertCue,
    AlignmentResult,
    ReferenceText,
    SessionSnapshot,
    TranscriptFragment,
)
from recitation_coach.core.silence import SilenceMonitor
from recitation_coach.core.tokenizer import tokenize

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
"""Returns the current time in milliseconds."""

_SPEECH_RE = re.compile(r"[a-zA-Z0-9]")
_DUPLICATE_TAIL_CHARS = 50


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def is_speech(text: str) -> bool:
    """True if a trimmed final fragment looks like real words, not noise."""
    return bool(_SPEECH_RE.search(text)) and len(text) > 1


def is_duplicate(accumulated: str, new_text: str) -> bool:
    """True if ``new_text`` repeats what the transcript already holds.

    WHY: Recognizers re-send recent results after an internal restart.
    Appending them again would double-count words the reciter said once.

    RULES:
    - Never a duplicate while the transcript is empty
    - Duplicate if the transcript ends with new_text
    - Duplicate if new_text starts with the transcript's last 50 chars
    """
    if not accumulated:
        return False
    return (
        accumulated.endswith(new_text)
        or new_text.startswith(accumulated[-_DUPLICATE_TAIL_CHARS:])
    )


def validate_pause_threshold(value_ms: int) -> int:
    """Return ``value_ms`` as int, raising ValueError when out of range."""
    value = int(value_ms)
    if not MIN_PAUSE_THRESHOLD_MS <= value <= MAX_PAUSE_THRESHOLD_MS:
        raise ValueError(
            "Pause threshold must be between {} and {} ms, got {}".format(
                MIN_PAUSE_THRESHOLD_MS, MAX_PAUSE_THRESHOLD_MS, value
            )
        )
    return value


class RecitationSession:
    """Live alignment engine state for one reciter and one passage.

    Args:
        reference: The passage being recited.
        pause_threshold_ms: Silence before an automatic reset, 1000-10000.
        alerts: Sink for the reset beep and completion chime.
        clock: Millisecond clock; defaults to time.monotonic().
        session_id: Identifier used in logs and by the HTTP store.

    Raises:
        ValueError: If the reference has no words or the threshold is
            out of range.
    """

    def __init__(
        self,
        reference: ReferenceText,
        pause_threshold_ms: int = DEFAULT_PAUSE_THRESHOLD_MS,
        alerts: AlertSink | None = None,
        clock: Clock | None = None,
        session_id: str | None = None,
    ) -> None:
        self.reference = reference
        self.reference_tokens = tokenize(reference.body)
        if not self.reference_tokens:
            raise ValueError("Reference text has no words to recite")

        self.id = session_id or uuid.uuid4().hex
        self._alerts = alerts or NullAlertSink()
        self._clock = clock or monotonic_ms
        self._monitor = SilenceMonitor(validate_pause_threshold(pause_threshold_ms))
        self._completion = CompletionDetector()

        self._recording = False
        self._transcript = ""
        self._interim = ""
        self._live: AlignmentResult | None = None
        self._completion_accuracy: int | None = None
        self._error: str | None = None
        self.reset_count = 0

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def interim(self) -> str:
        return self._interim

    @property
    def live(self) -> AlignmentResult | None:
        return self._live

    @property
    def completed(self) -> bool:
        return self._completion.signaled

    @property
    def completion_accuracy(self) -> int | None:
        return self._completion_accuracy

    @property
    def pause_threshold_ms(self) -> int:
        return self._monitor.pause_threshold_ms

    @property
    def reset_armed(self) -> bool:
        return self._monitor.armed

    @property
    def error(self) -> str | None:
        return self._error

    def snapshot(self) -> SessionSnapshot:
        """Copy the current state for rendering."""
        live = None
        if self._live is not None:
            live = AlignmentResult(
                words=list(self._live.words),
                accuracy=self._live.accuracy,
                correct_count=self._live.correct_count,
            )
        return SessionSnapshot(
            citation=self.reference.citation,
            recording=self._recording,
            transcript=self._transcript,
            interim=self._interim,
            live=live,
            completed=self.completed,
            completion_accuracy=self._completion_accuracy,
            pause_threshold_ms=self.pause_threshold_ms,
            ms_since_last_word=self._monitor.elapsed_ms(self._clock()),
            reset_armed=self._monitor.armed,
            monitor_state=self._monitor.state.value,
            reset_count=self.reset_count,
            error=self._error,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin recording from a fully cleared state."""
        if self._recording:
            logger.debug("Session %s already recording", self.id)
            return
        self._clear_progress()
        self._error = None
        self._recording = True
        self._monitor.start(self._clock())
        logger.info(
            "Session %s recording %s (pause threshold %dms)",
            self.id,
            self.reference.citation,
            self.pause_threshold_ms,
        )

    def stop(self) -> None:
        """Stop recording. Safe to call any number of times."""
        self._monitor.stop()
        if not self._recording:
            return
        self._recording = False
        self._interim = ""
        self._refresh(check_completion=False)
        logger.info("Session %s stopped (%d chars)", self.id, len(self._transcript))

    def fail(self, message: str) -> None:
        """Stop recording because the upstream source became unusable."""
        logger.error("Session %s failed: %s", self.id, message)
        self._error = message
        self.stop()

    def reset(self) -> None:
        """Clear the transcript and completion latch ("practice again")."""
        self._clear_progress()
        if self._recording:
            self._monitor.restart_clock(self._clock())
        logger.info("Session %s reset by user", self.id)

    def set_pause_threshold(self, value_ms: int) -> None:
        """Change the pause threshold; raises ValueError outside 1000-10000."""
        self._monitor.pause_threshold_ms = validate_pause_threshold(value_ms)

    def submit_fragment(self, fragment: TranscriptFragment) -> bool:
        return self.submit_fragments([fragment])

    def submit_fragments(self, fragments: Iterable[TranscriptFragment]) -> bool:
        """Ingest one batch of recognizer results.

        WHY: Recognizers deliver results in batches that mix finished
        phrases with the hypothesis still being spoken.

        HOW: Finals in the batch are joined and, if they pass the noise
        filter and duplicate check, appended to the transcript. Interims
        replace the previous interim text. The live alignment and the
        completion check then run over transcript + interim.

        Returns:
            True if the batch was processed, False if the session is not
            recording.
        """
        if not self._recording:
            logger.debug("Session %s ignored fragments while stopped", self.id)
            return False

        finals = []
        interims = []
        for fragment in fragments:
            text = fragment.text.strip()
            if not text:
                continue
            if fragment.is_final:
                finals.append(text)
            else:
                interims.append(text)

        if finals:
            self._accept_final(" ".join(finals))
        self._interim = " ".join(interims)
        self._refresh(check_completion=True)
        return True

    def tick(self) -> bool:
        """Run one silence-monitor tick. Returns True if a reset happened."""
        if not self._recording:
            return False
        if not self._monitor.check(self._clock(), bool(self._transcript)):
            return False

        self._play(AlertCue.PAUSE_RESET)
        self._clear_progress()
        self.reset_count += 1
        self._monitor.complete_reset(self._clock())
        logger.info("Session %s matching reset after pause", self.id)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _accept_final(self, text: str) -> None:
        if not is_speech(text):
            logger.debug("Session %s ignored noise result %r", self.id, text)
            return

        self._monitor.mark_word(self._clock())

        if is_duplicate(self._transcript, text):
            logger.info("Session %s skipped duplicate result %r", self.id, text)
            return

        self._transcript = (self._transcript + " " + text).strip()
        logger.debug("Session %s transcript: %s", self.id, self._transcript)

    def _refresh(self, check_completion: bool) -> None:
        full_text = (self._transcript + " " + self._interim).strip()
        if not full_text:
            self._live = None
            return

        live_tokens = tokenize(full_text)
        self._live = align(self.reference_tokens, live_tokens)

        if check_completion and self._completion.check(self.reference_tokens, live_tokens):
            self._completion_accuracy = self._live.accuracy
            self._play(AlertCue.COMPLETION)
            logger.info(
                "Session %s completed %s at %d%% accuracy",
                self.id,
                self.reference.citation,
                self._completion_accuracy,
            )

    def _clear_progress(self) -> None:
        self._transcript = ""
        self._interim = ""
        self._live = None
        self._completion.reset()
        self._completion_accuracy = None

    def _play(self, cue: AlertCue) -> None:
        try:
            self._alerts.play(cue)
        except Exception:
            logger.warning("Alert playback failed for %s", cue.value, exc_info=True)
