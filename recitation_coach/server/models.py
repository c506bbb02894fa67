"""Pydantic request/response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for request validation,
response serialization, and the OpenAPI docs at /docs.

HOW: One model per request body and per response shape. Engine
dataclasses are converted in app.py; nothing here imports the engine
except its enums.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
- Pause thresholds are range-checked here as well as in the engine
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from recitation_coach.config import (
    DEFAULT_PAUSE_THRESHOLD_MS,
    MAX_PAUSE_THRESHOLD_MS,
    MIN_PAUSE_THRESHOLD_MS,
)
from recitation_coach.core.models import WordStatus
from recitation_coach.feedback.base import MistakeKind


# ---------------------------------------------------------------------------
# Scripture
# ---------------------------------------------------------------------------


class TranslationInfo(BaseModel):
    id: str = Field(description="API.Bible translation id.")
    name: str = Field(description="Translation name.")
    abbreviation: str = Field(description="Short name, e.g. 'WEB'.")
    language: str = Field(description="Language name or code.")
    is_english: bool = Field(description="Whether the translation is in English.")


class TranslationListResponse(BaseModel):
    translations: List[TranslationInfo] = Field(description="English first, then by language and abbreviation.")
    total: int = Field(description="Number of translations returned.")
    english_count: int = Field(description="Number of English translations.")
    warning: Optional[str] = Field(
        default=None,
        description="Set when the built-in fallback list is served because of an upstream error.",
    )


class PassageResponse(BaseModel):
    citation: str = Field(description="Human-readable reference, e.g. 'John 3:16'.")
    text: str = Field(description="Plain verse text.")
    translation: str = Field(description="Translation id or name the text came from.")


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class FeedbackRequest(BaseModel):
    reference_text: str = Field(description="The passage that should have been recited.")
    transcript: str = Field(description="What the reciter actually said.")


class MistakeModel(BaseModel):
    type: MistakeKind = Field(description="missing, wrong, or added.")
    word: str = Field(description="The word involved.")
    position: int = Field(description="Reference word index where the slip was found.")


class FeedbackResponse(BaseModel):
    accuracy: int = Field(ge=0, le=100, description="Accuracy percentage.")
    mistakes: List[MistakeModel] = Field(description="Mistakes in reading order.")
    encouragement: str = Field(description="Encouraging message.")
    suggestions: str = Field(description="Suggestions for the next attempt.")
    source: str = Field(description="'openai' or 'heuristic'.")
    warning: Optional[str] = Field(default=None, description="Why the heuristic was used instead of the model.")
    code: Optional[str] = Field(default=None, description="QUOTA_EXCEEDED, INVALID_KEY, or UNAVAILABLE.")


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    """Start a session from supplied text, or from a passage lookup.

    RULES:
    - Either reference_text, or book + chapter + verse, must be given
    - pause_threshold_ms defaults to the saved preference
    """

    citation: Optional[str] = Field(default=None, description="Display citation for supplied text.")
    reference_text: Optional[str] = Field(default=None, description="Passage text to recite.")
    book: Optional[str] = Field(default=None, description="USFM book id, e.g. 'JHN'.")
    chapter: Optional[int] = Field(default=None, description="Chapter number.")
    verse: Optional[int] = Field(default=None, description="Verse number.")
    bible_id: Optional[str] = Field(default=None, description="API.Bible translation id.")
    pause_threshold_ms: Optional[int] = Field(
        default=None,
        ge=MIN_PAUSE_THRESHOLD_MS,
        le=MAX_PAUSE_THRESHOLD_MS,
        description="Silence before automatic reset, in milliseconds.",
    )


class FragmentModel(BaseModel):
    text: str = Field(description="Recognized text.")
    is_final: bool = Field(default=False, description="True for final results, False for interim.")


class FragmentBatchRequest(BaseModel):
    fragments: List[FragmentModel] = Field(description="One batch of recognizer results, in order.")


class PauseThresholdRequest(BaseModel):
    pause_threshold_ms: int = Field(
        ge=MIN_PAUSE_THRESHOLD_MS,
        le=MAX_PAUSE_THRESHOLD_MS,
        description="Silence before automatic reset, in milliseconds.",
    )


class AnnotatedWordModel(BaseModel):
    text: str = Field(description="Displayed word.")
    status: WordStatus = Field(description="correct, incorrect, missing, or pending.")


class LiveFeedbackModel(BaseModel):
    words: List[AnnotatedWordModel] = Field(description="Annotated words in display order.")
    accuracy: int = Field(description="Percentage of reference words matched so far.")
    correct_count: int = Field(description="Number of reference words matched so far.")


class SessionResponse(BaseModel):
    """Current state of a live session.

    RULES:
    - cues lists alert cues emitted since the previous response; the
      client plays them in order
    """

    id: str = Field(description="Session id.")
    citation: str = Field(description="Passage being recited.")
    reference_text: str = Field(description="Passage text.")
    recording: bool = Field(description="Whether the session is accepting fragments.")
    transcript: str = Field(description="Accumulated final text.")
    interim: str = Field(description="Latest interim text.")
    live: Optional[LiveFeedbackModel] = Field(default=None, description="Latest live alignment.")
    completed: bool = Field(description="Whether the end of the passage has been reached.")
    completion_accuracy: Optional[int] = Field(default=None, description="Accuracy when completion fired.")
    pause_threshold_ms: int = Field(description="Current pause threshold.")
    ms_since_last_word: float = Field(description="Milliseconds since the last accepted word.")
    reset_count: int = Field(description="Automatic resets so far.")
    monitor_state: str = Field(description="idle, watching, or resetting.")
    error: Optional[str] = Field(default=None, description="Failure that stopped the session, if any.")
    cues: List[str] = Field(default_factory=list, description="Alert cues to play: pause_reset, completion.")


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class PreferencesResponse(BaseModel):
    pause_threshold_ms: int = Field(default=DEFAULT_PAUSE_THRESHOLD_MS, description="Saved pause threshold.")
    default_translation: Optional[str] = Field(default=None, description="Saved default translation id.")
    memorized_passages: List[str] = Field(default_factory=list, description="Citations marked as memorized.")


class DefaultTranslationRequest(BaseModel):
    bible_id: Optional[str] = Field(default=None, description="Translation id; null clears the default.")


class MemorizedRequest(BaseModel):
    citation: str = Field(min_length=1, description="Citation to mark as memorized.")


class MemorizedResponse(BaseModel):
    added: bool = Field(description="False if the citation was already listed.")
    memorized_passages: List[str] = Field(description="All memorized citations.")


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
