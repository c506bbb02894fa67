"""Value types shared by the live alignment engine.

WHY: The tokenizer, aligner, completion detector, session controller, and
every outer layer (CLI, HTTP API, feedback) exchange the same handful of
shapes. Defining them once keeps the contract between the engine and its
callers explicit.

HOW: Small dataclasses and str-backed enums:
  ReferenceText      - the passage being memorized (immutable)
  TranscriptFragment - one speech-to-text result, final or interim
  WordStatus         - live classification of one displayed word
  AnnotatedWord      - a displayed word with its status
  AlignmentResult    - aligner output: annotated words plus accuracy
  AlertCue           - audible/visual cues the session emits
  SessionSnapshot    - read-only view of a session for rendering

RULES:
- ReferenceText is frozen; a session never mutates its reference
- Enums inherit from str so values serialize cleanly to JSON
- SessionSnapshot is a copy; mutating it never touches the session
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ReferenceText:
    """The passage a user is reciting.

    RULES:
    - citation: human-readable reference, e.g. "John 3:16"
    - body: plain text, no markup
    - translation: display label of the source translation, may be empty
    """

    citation: str
    body: str
    translation: str = ""


@dataclass(frozen=True)
class TranscriptFragment:
    """One incremental speech-to-text result.

    WHY: Recognizers emit interim hypotheses that keep changing and final
    results that never change again. Only finals may accumulate.

    RULES:
    - is_final=True: authoritative, appended to the session transcript
    - is_final=False: transient, shown after the accumulated text only
    """

    text: str
    is_final: bool = False


class WordStatus(str, enum.Enum):
    """Live classification of a displayed word.

    RULES:
    - correct: reference word matched by a spoken word
    - incorrect: spoken word that matches nothing nearby
    - missing: reference word that was skipped or stalled on
    - pending: reference word plausibly still to come
    """

    CORRECT = "correct"
    INCORRECT = "incorrect"
    MISSING = "missing"
    PENDING = "pending"


@dataclass(frozen=True)
class AnnotatedWord:
    """A single displayed word and its live status."""

    text: str
    status: WordStatus


@dataclass
class AlignmentResult:
    """Output of one alignment pass.

    RULES:
    - words: display order, already truncated to the render bound
    - accuracy: integer percentage 0-100 of reference words matched
    - correct_count: number of reference words marked correct
    """

    words: list[AnnotatedWord] = field(default_factory=list)
    accuracy: int = 0
    correct_count: int = 0


class AlertCue(str, enum.Enum):
    """Cues a session asks its alert sink to play."""

    PAUSE_RESET = "pause_reset"
    COMPLETION = "completion"


@dataclass
class SessionSnapshot:
    """Read-only copy of a session's state for rendering.

    RULES:
    - recording: True between start() and stop()/failure
    - transcript: accumulated final text
    - interim: latest interim text (cleared on stop and reset)
    - live: latest alignment over transcript + interim, or None
    - completed / completion_accuracy: completion latch and the accuracy
      captured when it fired
    - monitor_state: "idle", "watching", or "resetting"
    - error: message of the hard failure that stopped the session, if any
    """

    citation: str
    recording: bool
    transcript: str
    interim: str
    live: AlignmentResult | None
    completed: bool
    completion_accuracy: int | None
    pause_threshold_ms: int
    ms_since_last_word: float
    reset_armed: bool
    monitor_state: str
    reset_count: int
    error: str | None = None
