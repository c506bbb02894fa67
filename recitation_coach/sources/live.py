"""Drive a RecitationSession from a recognition source.

WHY: Recognizers stop on their own all the time. The reciter should not
have to notice: a run that ends while they are still recording is simply
restarted, a transient failure is retried a few times, and only a real
problem (permission denied, retries exhausted) stops the session.

HOW: run_recognition() loops over source runs and feeds every batch into
the session. watch_silence() ticks the session's silence monitor on a
fixed interval. practice() runs both together for one recording.

RULES:
- Never restart once the session has stopped or the source is finished
- Restartable failures wait backoff_ms and count toward max_attempts
- A delivered batch resets the failure count
- Fatal failures call session.fail() before the error propagates
- The source is closed exactly once, however the loop exits
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from recitation_coach.config import SILENCE_TICK_MS
from recitation_coach.core.models import SessionSnapshot
from recitation_coach.core.session import RecitationSession
from recitation_coach.sources.base import (
    PermissionDeniedError,
    ReconnectPolicy,
    RecognitionSource,
    SourceError,
    SourceRetriesExhaustedError,
)

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[RecitationSession], None]


async def run_recognition(
    session: RecitationSession,
    source: RecognitionSource,
    policy: ReconnectPolicy | None = None,
    on_update: UpdateCallback | None = None,
) -> None:
    """Feed ``source`` into ``session`` until recording stops.

    Args:
        session: A session that has already been started.
        source: The recognition source to drive.
        policy: Retry settings; defaults to ReconnectPolicy().
        on_update: Optional callback invoked after every delivered batch.

    Raises:
        PermissionDeniedError: The source was refused microphone access.
        SourceRetriesExhaustedError: Restartable failures exceeded the budget.
        SourceError: A failure kind the policy does not restart.
    """
    policy = policy or ReconnectPolicy()
    failures = 0
    runs = 0

    try:
        while session.is_recording:
            runs += 1
            try:
                async for batch in source.stream():
                    if not session.is_recording:
                        break
                    session.submit_fragments(batch)
                    failures = 0
                    if on_update:
                        on_update(session)
            except SourceError as exc:
                if not policy.is_restartable(exc):
                    session.fail(str(exc))
                    raise
                failures += 1
                if failures >= policy.max_attempts:
                    session.fail(f"Recognition stopped after {failures} failed attempts")
                    raise SourceRetriesExhaustedError(failures, exc) from exc
                logger.warning(
                    "Recognition run %d failed (%s), restarting in %dms (%d/%d)",
                    runs,
                    exc.kind.value,
                    policy.backoff_ms,
                    failures,
                    policy.max_attempts,
                )
                await asyncio.sleep(policy.backoff_ms / 1000.0)
                continue

            if source.finished:
                logger.info("Recognition source finished after %d runs", runs)
                break
            if session.is_recording:
                log = logger.info if source.supports_continuous_streaming else logger.debug
                log("Recognition run %d ended while recording, restarting", runs)
                await asyncio.sleep(0)
    except PermissionDeniedError:
        logger.error("Microphone permission denied for session %s", session.id)
        raise
    finally:
        await source.close()


async def watch_silence(
    session: RecitationSession,
    tick_ms: int = SILENCE_TICK_MS,
) -> int:
    """Tick the session's silence monitor until recording stops.

    Returns:
        The number of automatic resets that happened while watching.
    """
    resets = 0
    while session.is_recording:
        if session.tick():
            resets += 1
        await asyncio.sleep(tick_ms / 1000.0)
    return resets


async def practice(
    session: RecitationSession,
    source: RecognitionSource,
    policy: ReconnectPolicy | None = None,
    tick_ms: int = SILENCE_TICK_MS,
    on_update: UpdateCallback | None = None,
) -> SessionSnapshot:
    """Run one recording from start to stop and return the final state.

    The session is started here and stopped when the source finishes or
    fails. Source failures propagate after the session has been stopped.
    """
    session.start()
    watcher = asyncio.create_task(watch_silence(session, tick_ms))
    try:
        await run_recognition(session, source, policy, on_update)
    finally:
        session.stop()
        await watcher
    return session.snapshot()
