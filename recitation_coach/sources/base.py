"""Recognition source contract, reconnect policy, and error taxonomy.

WHY: Speech recognizers end their streams for mundane reasons (an
utterance finished, the engine timed out on silence, the platform does not
support continuous streaming) and fail for serious ones (microphone
permission denied). The driver has to tell these apart to decide between
"restart quietly" and "stop the session and tell the user".

HOW: RecognitionSource is an ABC with one async generator, stream(), that
yields batches of fragments and either returns (normal end) or raises
SourceError with a kind. ReconnectPolicy lists which kinds are worth
restarting and how often.

RULES:
- A normal end while the session is recording means "restart"
- finished=True means the source has nothing more to give; never restart
- PermissionDeniedError is always fatal, whatever the policy says
- supports_continuous_streaming=False marks sources that end after every
  utterance; their ends are expected and logged quietly
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import FrozenSet, List

from recitation_coach.core.models import TranscriptFragment


class SourceErrorKind(str, enum.Enum):
    """Why a recognition stream failed."""

    ABORTED = "aborted"
    NO_SPEECH = "no-speech"
    NOT_ALLOWED = "not-allowed"
    NETWORK = "network"
    OTHER = "other"


class SourceError(Exception):
    """Raised by a source when its stream fails.

    RULES:
    - kind drives the restart decision
    - message is a human-readable detail, may be empty
    """

    def __init__(self, kind: SourceErrorKind, message: str = "") -> None:
        self.kind = kind
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"Recognition error ({kind.value}){detail}")


class PermissionDeniedError(SourceError):
    """The user (or platform) refused access to the microphone."""

    def __init__(self, message: str = "Microphone permission denied") -> None:
        super().__init__(SourceErrorKind.NOT_ALLOWED, message)


class SourceRetriesExhaustedError(Exception):
    """Raised when restartable errors kept happening past the retry budget.

    RULES:
    - attempts is the number of consecutive failed attempts
    - last_error is the SourceError that ended the final attempt
    """

    def __init__(self, attempts: int, last_error: SourceError) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Recognition gave up after {attempts} attempts: {last_error}"
        )


def _default_restartable() -> FrozenSet[SourceErrorKind]:
    return frozenset({SourceErrorKind.ABORTED, SourceErrorKind.NO_SPEECH})


@dataclass
class ReconnectPolicy:
    """How run_recognition() handles a failing source.

    RULES:
    - max_attempts: consecutive restartable failures allowed before giving up
    - backoff_ms: pause before each restart after a failure
    - restartable_error_kinds: kinds that are retried; anything else is fatal
    - A batch delivered successfully resets the failure count
    """

    max_attempts: int = 3
    backoff_ms: int = 250
    restartable_error_kinds: FrozenSet[SourceErrorKind] = field(
        default_factory=_default_restartable
    )

    def is_restartable(self, error: SourceError) -> bool:
        if isinstance(error, PermissionDeniedError):
            return False
        return error.kind in self.restartable_error_kinds


class RecognitionSource(ABC):
    """A push-based producer of transcript fragments.

    WHY: Decouples the engine from any particular recognizer so the same
    session logic serves terminals, browsers, and tests.

    HOW: Each call to stream() opens one recognition run. The driver calls
    it again after a normal end or a restartable error.
    """

    supports_continuous_streaming: bool = True

    @property
    def finished(self) -> bool:
        """True once the source can never produce more fragments."""
        return False

    @abstractmethod
    def stream(self) -> AsyncIterator[List[TranscriptFragment]]:
        """Yield batches of fragments until the run ends or fails."""

    async def close(self) -> None:
        """Release any resources. Called once by the driver."""
        return None
