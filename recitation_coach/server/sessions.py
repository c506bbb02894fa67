"""In-memory store of live recitation sessions with idle expiry.

WHY: A browser client relays recognizer results to the server one batch
at a time, so sessions must outlive a single request. Each session keeps
its own engine state; the store only maps ids to sessions and forgets
sessions nobody has touched for a while.

HOW: ManagedSession pairs a RecitationSession with the QueueAlertSink it
plays into, so cues can be handed to the client in the next response.
SessionStore is a dict guarded by a threading.Lock. tick_all() runs one
silence-monitor tick for every recording session; the app calls it from
a background task on the event loop.

RULES:
- Store mutations hold self._lock; session methods run on the event loop
- get() returns None for unknown ids (no exceptions)
- touch() bumps updated_at whenever a client acts on a session
- cleanup_expired() stops and removes sessions idle past TTL, recording or not
- create() refuses new sessions past max_sessions with ValueError
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from recitation_coach.config import DEFAULT_PAUSE_THRESHOLD_MS
from recitation_coach.core.alerts import QueueAlertSink
from recitation_coach.core.models import ReferenceText
from recitation_coach.core.session import Clock, RecitationSession

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


@dataclass
class ManagedSession:
    """A session plus the bookkeeping the HTTP layer needs."""

    session: RecitationSession
    alerts: QueueAlertSink
    created_at: float
    updated_at: float

    @property
    def id(self) -> str:
        return self.session.id

    def take_cues(self) -> List[str]:
        """Return queued cue names (oldest first) and clear the queue."""
        return [cue.value for cue in self.alerts.drain()]


class SessionStore:
    """Thread-safe registry of ManagedSession objects."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        max_sessions: int = 100,
        clock: Optional[Clock] = None,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._sessions: Dict[str, ManagedSession] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._wall_clock = wall_clock

    def create(
        self,
        reference: ReferenceText,
        pause_threshold_ms: int = DEFAULT_PAUSE_THRESHOLD_MS,
    ) -> ManagedSession:
        """Create a stopped session for ``reference``.

        Raises:
            ValueError: If the store is full, the reference is empty, or
                the threshold is out of range.
        """
        alerts = QueueAlertSink()
        session = RecitationSession(
            reference,
            pause_threshold_ms=pause_threshold_ms,
            alerts=alerts,
            clock=self._clock,
        )
        now = self._wall_clock()
        managed = ManagedSession(session, alerts, created_at=now, updated_at=now)

        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise ValueError(
                    "Maximum number of sessions ({}) reached".format(self.max_sessions)
                )
            self._sessions[session.id] = managed

        logger.info("Created session %s for %s", session.id, reference.citation)
        return managed

    def get(self, session_id: str) -> Optional[ManagedSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def list(self) -> List[ManagedSession]:
        with self._lock:
            return sorted(self._sessions.values(), key=lambda m: m.created_at)

    def touch(self, managed: ManagedSession) -> None:
        managed.updated_at = self._wall_clock()

    def delete(self, session_id: str) -> bool:
        with self._lock:
            managed = self._sessions.pop(session_id, None)
        if managed is None:
            return False
        managed.session.stop()
        logger.info("Deleted session %s", session_id)
        return True

    def tick_all(self) -> int:
        """Tick every recording session. Returns how many reset."""
        resets = 0
        for managed in self.list():
            if managed.session.is_recording and managed.session.tick():
                resets += 1
        return resets

    def cleanup_expired(self) -> int:
        """Stop and remove sessions idle for longer than the TTL.

        A recording session whose client went away is idle too: every
        client request touches its session, the background ticker does not.
        """
        now = self._wall_clock()
        expired: List[ManagedSession] = []

        with self._lock:
            for session_id, managed in list(self._sessions.items()):
                if now - managed.updated_at > self._ttl_seconds:
                    expired.append(self._sessions.pop(session_id))

        for managed in expired:
            managed.session.stop()
            logger.info(
                "Expired session %s (idle %.0fs)", managed.id, now - managed.updated_at
            )
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for managed in sessions:
            managed.session.stop()
