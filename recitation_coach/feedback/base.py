"""Feedback result types, generator contract, and error taxonomy.

RULES:
- Mistake.kind is one of missing / wrong / added
- Mistake.position is the reference word index the slip was found at
- FeedbackGeneratorError subclasses carry a stable code for clients
- RecitationValidationError is raised for blank inputs and never retried
"""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional


class MistakeKind(str, enum.Enum):
    MISSING = "missing"
    WRONG = "wrong"
    ADDED = "added"


@dataclass(frozen=True)
class Mistake:
    kind: MistakeKind
    word: str
    position: int


@dataclass
class FeedbackResult:
    """Feedback on one recitation.

    RULES:
    - source: "openai" or "heuristic"
    - warning / code: set when the heuristic stood in for the model
    """

    accuracy: int
    mistakes: List[Mistake] = field(default_factory=list)
    encouragement: str = ""
    suggestions: str = ""
    source: str = "heuristic"
    warning: Optional[str] = None
    code: Optional[str] = None


class RecitationValidationError(ValueError):
    """Raised when the reference text or the recitation is blank."""


class FeedbackGeneratorError(Exception):
    """Base class for generator failures that trigger the heuristic fallback.

    RULES:
    - code: stable identifier surfaced to clients
    - warning: human-readable explanation shown next to fallback feedback
    """

    code = "UNAVAILABLE"
    warning = (
        "Unable to get AI feedback right now. Showing simple feedback instead."
    )


class FeedbackQuotaError(FeedbackGeneratorError):
    code = "QUOTA_EXCEEDED"
    warning = (
        "Using simple feedback due to OpenAI quota limit. Add credits at "
        "https://platform.openai.com/ for AI-powered coaching."
    )


class FeedbackAuthError(FeedbackGeneratorError):
    code = "INVALID_KEY"
    warning = (
        "Using simple feedback because the OpenAI API key is missing or "
        "invalid. Please check OPENAI_API_KEY in the .env file."
    )


class FeedbackUnavailableError(FeedbackGeneratorError):
    code = "UNAVAILABLE"


class FeedbackGenerator(ABC):
    """Produces feedback comparing a recitation with its reference."""

    name = "generator"

    @abstractmethod
    async def generate(self, reference_body: str, transcript: str) -> FeedbackResult:
        """Return feedback, or raise FeedbackGeneratorError."""
