"""FastAPI application: passages, feedback, live sessions, preferences.

WHY: A browser front end does the listening (its speech recognizer runs
on the device) but needs somewhere to fetch passages, run the live
matching engine, keep preferences, and get post-session feedback. FastAPI
gives request validation and OpenAPI docs for free.

HOW: Module-level singletons hold the session store and the preferences
store. The client creates a session, starts it, and posts each batch of
recognizer results to /sessions/{id}/fragments; every session response
carries the live alignment and any alert cues to play. A lifespan task
ticks all recording sessions every SILENCE_TICK_MS so pause resets happen
even while the client is silent, and expires idle sessions.

RULES:
- Session endpoints are async so they share the event loop with the ticker
- Error responses use a consistent ErrorResponse schema
- 400 for bad identifiers or blank inputs, 404 for unknown sessions or
  passages, 409 for fragments sent to a stopped session, 429 when full
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import Response

from recitation_coach import __version__
from recitation_coach.config import SILENCE_TICK_MS
from recitation_coach.core.models import ReferenceText, TranscriptFragment
from recitation_coach.feedback.base import FeedbackGenerator, RecitationValidationError
from recitation_coach.feedback.service import default_generator, evaluate_recitation
from recitation_coach.preferences import PreferencesStore
from recitation_coach.scripture.provider import (
    PassageId,
    PassageValidationError,
    ScriptureProvider,
)
from recitation_coach.server.models import (
    AnnotatedWordModel,
    CreateSessionRequest,
    DefaultTranslationRequest,
    ErrorResponse,
    FeedbackRequest,
    FeedbackResponse,
    FragmentBatchRequest,
    HealthResponse,
    LiveFeedbackModel,
    MemorizedRequest,
    MemorizedResponse,
    MistakeModel,
    PassageResponse,
    PauseThresholdRequest,
    PreferencesResponse,
    SessionResponse,
    TranslationInfo,
    TranslationListResponse,
)
from recitation_coach.server.sessions import ManagedSession, SessionStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

session_store = SessionStore()
preferences_store = PreferencesStore()

_CLEANUP_INTERVAL_S = 300


def _provider() -> ScriptureProvider:
    return ScriptureProvider()


def _feedback_generator() -> FeedbackGenerator:
    return default_generator()


async def _tick_sessions() -> None:
    """Tick recording sessions every SILENCE_TICK_MS; expire idle ones."""
    interval = SILENCE_TICK_MS / 1000.0
    since_cleanup = 0.0
    while True:
        await asyncio.sleep(interval)
        session_store.tick_all()
        since_cleanup += interval
        if since_cleanup >= _CLEANUP_INTERVAL_S:
            since_cleanup = 0.0
            session_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the session ticker on startup, cancel it on shutdown."""
    task = asyncio.create_task(_tick_sessions())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    session_store.clear()


app = FastAPI(
    lifespan=lifespan,
    title="Recitation Coach API",
    description=(
        "Live word-by-word feedback while reciting a memorized passage. "
        "Fetch a passage, create a session, stream recognizer results into "
        "it, and get coaching feedback when you are done."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_to_response(managed: ManagedSession) -> SessionResponse:
    """Convert a managed session to a SessionResponse, draining its cues."""
    session = managed.session
    snap = session.snapshot()
    live = None
    if snap.live is not None:
        live = LiveFeedbackModel(
            words=[AnnotatedWordModel(text=w.text, status=w.status) for w in snap.live.words],
            accuracy=snap.live.accuracy,
            correct_count=snap.live.correct_count,
        )
    return SessionResponse(
        id=session.id,
        citation=snap.citation,
        reference_text=session.reference.body,
        recording=snap.recording,
        transcript=snap.transcript,
        interim=snap.interim,
        live=live,
        completed=snap.completed,
        completion_accuracy=snap.completion_accuracy,
        pause_threshold_ms=snap.pause_threshold_ms,
        ms_since_last_word=snap.ms_since_last_word,
        reset_count=snap.reset_count,
        monitor_state=snap.monitor_state,
        error=snap.error,
        cues=managed.take_cues(),
    )


def _get_session(session_id: str) -> ManagedSession:
    managed = session_store.get(session_id)
    if managed is None:
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    session_store.touch(managed)
    return managed


async def _lookup_passage(
    book: Optional[str],
    chapter: Optional[int],
    verse: Optional[int],
    bible_id: Optional[str],
) -> ReferenceText:
    try:
        passage_id = PassageId.create(book, chapter, verse, bible_id)
    except PassageValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    if passage_id.bible_id is None:
        saved = preferences_store.load().default_translation
        if saved:
            passage_id = PassageId(passage_id.book, passage_id.chapter, passage_id.verse, saved)

    reference = await _provider().get_passage(passage_id)
    if reference is None:
        raise HTTPException(
            status_code=404,
            detail="Could not fetch {}".format(passage_id.citation),
        )
    return reference


def _preferences_response() -> PreferencesResponse:
    prefs = preferences_store.load()
    return PreferencesResponse(
        pause_threshold_ms=prefs.pause_threshold_ms,
        default_translation=prefs.default_translation,
        memorized_passages=prefs.memorized_passages,
    )


# ---------------------------------------------------------------------------
# Endpoints: Scripture
# ---------------------------------------------------------------------------


@app.get(
    "/translations",
    response_model=TranslationListResponse,
    tags=["scripture"],
    summary="List available translations",
    description=(
        "Translations available for passage lookup, English first. Without "
        "an API.Bible key, or when API.Bible fails, a short built-in list is "
        "returned instead."
    ),
)
async def list_translations() -> TranslationListResponse:
    catalog = await _provider().list_translations()
    return TranslationListResponse(
        translations=[
            TranslationInfo(
                id=t.id,
                name=t.name,
                abbreviation=t.abbreviation,
                language=t.language,
                is_english=t.is_english,
            )
            for t in catalog.translations
        ],
        total=catalog.total,
        english_count=catalog.english_count,
        warning=catalog.warning,
    )


@app.get(
    "/passages",
    response_model=PassageResponse,
    tags=["scripture"],
    summary="Fetch a passage",
    description=(
        "Fetch one verse as plain text. Uses API.Bible when a key is "
        "configured, otherwise (or on failure) bible-api.com."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid book, chapter, or verse"},
        404: {"model": ErrorResponse, "description": "Passage not found"},
    },
)
async def get_passage(
    book: Optional[str] = Query(default=None, description="USFM book id, e.g. 'JHN'."),
    chapter: Optional[int] = Query(default=None, description="Chapter number."),
    verse: Optional[int] = Query(default=None, description="Verse number."),
    bible_id: Optional[str] = Query(default=None, description="API.Bible translation id."),
) -> PassageResponse:
    reference = await _lookup_passage(book, chapter, verse, bible_id)
    return PassageResponse(
        citation=reference.citation,
        text=reference.body,
        translation=reference.translation,
    )


# ---------------------------------------------------------------------------
# Endpoints: Feedback
# ---------------------------------------------------------------------------


@app.post(
    "/feedback",
    response_model=FeedbackResponse,
    tags=["feedback"],
    summary="Get feedback on a recitation",
    description=(
        "Compare a recitation with the reference text. Falls back to simple "
        "local feedback (with a warning and code) when the AI coach is "
        "unavailable."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Reference text or transcript is blank"},
    },
)
async def create_feedback(request: FeedbackRequest) -> FeedbackResponse:
    try:
        result = await evaluate_recitation(
            request.reference_text,
            request.transcript,
            generator=_feedback_generator(),
        )
    except RecitationValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return FeedbackResponse(
        accuracy=result.accuracy,
        mistakes=[
            MistakeModel(type=m.kind, word=m.word, position=m.position)
            for m in result.mistakes
        ],
        encouragement=result.encouragement,
        suggestions=result.suggestions,
        source=result.source,
        warning=result.warning,
        code=result.code,
    )


# ---------------------------------------------------------------------------
# Endpoints: Sessions
# ---------------------------------------------------------------------------


@app.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    tags=["sessions"],
    summary="Create a live recitation session",
    description=(
        "Create a stopped session from supplied text or from a passage "
        "lookup. Start it with POST /sessions/{id}/start."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "No usable reference text"},
        404: {"model": ErrorResponse, "description": "Passage not found"},
        429: {"model": ErrorResponse, "description": "Too many sessions"},
    },
)
async def create_session(request: CreateSessionRequest) -> SessionResponse:
    if request.reference_text and request.reference_text.strip():
        reference = ReferenceText(
            citation=request.citation or "Custom passage",
            body=request.reference_text.strip(),
        )
    elif request.book:
        reference = await _lookup_passage(
            request.book, request.chapter, request.verse, request.bible_id
        )
    else:
        raise HTTPException(
            status_code=400,
            detail="Provide reference_text, or book, chapter, and verse",
        )

    threshold = request.pause_threshold_ms
    if threshold is None:
        threshold = preferences_store.load().pause_threshold_ms

    try:
        managed = session_store.create(reference, pause_threshold_ms=threshold)
    except ValueError as exc:
        if "Maximum number" in str(exc):
            raise HTTPException(status_code=429, detail=str(exc))
        raise HTTPException(status_code=400, detail=str(exc))
    return _session_to_response(managed)


@app.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Get session state",
    description="Current live state, including any alert cues emitted since the last response.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def get_session(session_id: str) -> SessionResponse:
    return _session_to_response(_get_session(session_id))


@app.post(
    "/sessions/{session_id}/start",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Start recording",
    description="Clear previous progress and start accepting fragments.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def start_session(session_id: str) -> SessionResponse:
    managed = _get_session(session_id)
    managed.session.start()
    return _session_to_response(managed)


@app.post(
    "/sessions/{session_id}/stop",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Stop recording",
    description="Stop accepting fragments. Safe to call repeatedly.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def stop_session(session_id: str) -> SessionResponse:
    managed = _get_session(session_id)
    managed.session.stop()
    return _session_to_response(managed)


@app.post(
    "/sessions/{session_id}/reset",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Practice again",
    description="Clear the transcript and completion state without stopping.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def reset_session(session_id: str) -> SessionResponse:
    managed = _get_session(session_id)
    managed.session.reset()
    return _session_to_response(managed)


@app.post(
    "/sessions/{session_id}/fragments",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Submit recognizer results",
    description=(
        "Submit one batch of final and interim recognizer results. Returns "
        "the updated live alignment."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Session is not recording"},
    },
)
async def submit_fragments(session_id: str, request: FragmentBatchRequest) -> SessionResponse:
    managed = _get_session(session_id)
    batch = [TranscriptFragment(f.text, is_final=f.is_final) for f in request.fragments]
    if not managed.session.submit_fragments(batch):
        raise HTTPException(status_code=409, detail="Session is not recording")
    return _session_to_response(managed)


@app.put(
    "/sessions/{session_id}/pause-threshold",
    response_model=SessionResponse,
    tags=["sessions"],
    summary="Change the pause threshold",
    description="Takes effect on the next silence check and is saved as the default for new sessions.",
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        422: {"model": ErrorResponse, "description": "Threshold out of range"},
    },
)
async def set_session_pause_threshold(
    session_id: str,
    request: PauseThresholdRequest,
) -> SessionResponse:
    managed = _get_session(session_id)
    managed.session.set_pause_threshold(request.pause_threshold_ms)
    preferences_store.set_pause_threshold(request.pause_threshold_ms)
    return _session_to_response(managed)


@app.delete(
    "/sessions/{session_id}",
    status_code=204,
    tags=["sessions"],
    summary="Delete a session",
    description="Stop and forget a session.",
    responses={404: {"model": ErrorResponse, "description": "Session not found"}},
)
async def delete_session(session_id: str) -> Response:
    if not session_store.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found: {}".format(session_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Preferences
# ---------------------------------------------------------------------------


@app.get(
    "/preferences",
    response_model=PreferencesResponse,
    tags=["preferences"],
    summary="Get saved preferences",
)
def get_preferences() -> PreferencesResponse:
    return _preferences_response()


@app.put(
    "/preferences/pause-threshold",
    response_model=PreferencesResponse,
    tags=["preferences"],
    summary="Save the default pause threshold",
)
def put_pause_threshold(request: PauseThresholdRequest) -> PreferencesResponse:
    preferences_store.set_pause_threshold(request.pause_threshold_ms)
    return _preferences_response()


@app.put(
    "/preferences/default-translation",
    response_model=PreferencesResponse,
    tags=["preferences"],
    summary="Save or clear the default translation",
)
def put_default_translation(request: DefaultTranslationRequest) -> PreferencesResponse:
    preferences_store.set_default_translation(request.bible_id)
    return _preferences_response()


@app.post(
    "/preferences/memorized",
    response_model=MemorizedResponse,
    tags=["preferences"],
    summary="Mark a passage as memorized",
    description="Adds the citation once; repeated calls report added=false.",
)
def add_memorized(request: MemorizedRequest) -> MemorizedResponse:
    try:
        added = preferences_store.add_memorized(request.citation)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return MemorizedResponse(
        added=added,
        memorized_passages=preferences_store.load().memorized_passages,
    )


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Entry point for the recitation-coach-api console script."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(app, host=host, port=port)
