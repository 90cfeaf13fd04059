"""Preview session lifecycle management."""

import asyncio
import contextlib
import logging
import threading
import uuid
from collections import OrderedDict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from preview_engine.config import settings
from preview_engine.core.exceptions import (
    SessionExpiredError,
    SessionLimitError,
    SessionNotFoundError,
)
from preview_engine.core.file_store import VirtualFileStore
from preview_engine.core.generator import validate_snapshot
from preview_engine.models.session import SessionInfo, SessionStats

logger = logging.getLogger(__name__)

# How many expired session ids are remembered so late callers get
# SESSION_EXPIRED instead of SESSION_NOT_FOUND.
EXPIRED_ID_MEMORY = 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Session:
    """One in-progress preview of a generated file set."""

    def __init__(
        self,
        session_id: str,
        project_name: str,
        files: list[tuple[str, str]],
        created_at: datetime,
    ):
        self.id = session_id
        self.project_name = project_name
        self.created_at = created_at
        self.last_accessed_at = created_at

        self.files = VirtualFileStore(files)
        self.total_files = len(self.files)

    def touch(self, now: datetime) -> None:
        """Update last access timestamp."""
        self.last_accessed_at = now

    def idle_seconds(self, now: datetime) -> float:
        return (now - self.last_accessed_at).total_seconds()

    def is_expired(self, now: datetime, ttl_seconds: int) -> bool:
        return self.idle_seconds(now) > ttl_seconds

    def expires_at(self, ttl_seconds: int) -> datetime:
        return self.last_accessed_at + timedelta(seconds=ttl_seconds)

    def cleanup(self) -> None:
        """Free all file history buffers."""
        self.files.clear()

    def to_info(self, ttl_seconds: int) -> SessionInfo:
        """Convert to API response model."""
        return SessionInfo(
            session_id=self.id,
            project_name=self.project_name,
            total_files=self.total_files,
            dirty_files=len(self.files.dirty_files()),
            created_at=self.created_at,
            last_accessed_at=self.last_accessed_at,
            expires_at=self.expires_at(ttl_seconds),
        )


class SessionManager:
    """Owns the process-wide map of session id to Session.

    The map is the only state shared across requests. Every insert, lookup
    and removal happens under one lock, and a successful lookup refreshes the
    session's access time under that same lock, so the sweep can never reap
    a session that was just handed to a request.
    """

    def __init__(
        self,
        ttl_seconds: int | None = None,
        max_sessions: int | None = None,
        sweep_interval_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self.max_sessions = max_sessions if max_sessions is not None else settings.max_sessions
        self._sweep_interval = (
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.sweep_interval_seconds
        )
        self._clock = clock or _utcnow

        self._sessions: dict[str, Session] = {}
        self._expired_ids: OrderedDict[str, None] = OrderedDict()
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the background sweep."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.info(
            f"SessionManager started (ttl={self.ttl_seconds}s, "
            f"sweep every {self._sweep_interval}s)"
        )

    async def stop(self) -> None:
        """Stop the sweep and drop every session."""
        if self._sweep_task:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None

        with self._lock:
            for session in self._sessions.values():
                session.cleanup()
            dropped = len(self._sessions)
            self._sessions.clear()
            self._expired_ids.clear()

        logger.info(f"SessionManager stopped ({dropped} sessions dropped)")

    def create(self, files: list[tuple[str, str]], project_name: str) -> Session:
        """Create a session from a generated ``(path, content)`` snapshot.

        Raises:
            GenerationError: If the snapshot is empty or malformed.
            SessionLimitError: If the concurrent session limit is reached.
        """
        snapshot = validate_snapshot(files)
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise SessionLimitError(self.max_sessions)

            session_id = f"prev_{uuid.uuid4().hex}"
            while session_id in self._sessions or session_id in self._expired_ids:
                session_id = f"prev_{uuid.uuid4().hex}"

            session = Session(
                session_id=session_id,
                project_name=project_name,
                files=snapshot,
                created_at=self._clock(),
            )
            self._sessions[session_id] = session

        logger.info(
            f"Created session {session_id} for '{project_name}' with {session.total_files} files"
        )
        return session

    def get(self, session_id: str) -> Session:
        """Get a live session by ID and refresh its access time.

        Raises:
            SessionNotFoundError: If no such session exists.
            SessionExpiredError: If the session outlived its TTL. It is
                evicted as a side effect.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                if session_id in self._expired_ids:
                    raise SessionExpiredError(session_id, self.ttl_seconds)
                raise SessionNotFoundError(session_id)

            now = self._clock()
            if session.is_expired(now, self.ttl_seconds):
                self._evict_locked(session_id)
                logger.info(
                    f"Session {session_id} expired (idle {session.idle_seconds(now):.0f}s)"
                )
                raise SessionExpiredError(session_id, self.ttl_seconds)

            session.touch(now)
            return session

    def touch(self, session_id: str) -> None:
        """Refresh a session's access time."""
        self.get(session_id)

    def sweep(self) -> int:
        """Remove every session past its TTL. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale_ids = [
                session_id
                for session_id, session in self._sessions.items()
                if session.is_expired(now, self.ttl_seconds)
            ]
            for session_id in stale_ids:
                idle = self._sessions[session_id].idle_seconds(now)
                self._evict_locked(session_id)
                logger.info(f"Session {session_id} expired (idle {idle:.0f}s)")
        return len(stale_ids)

    def destroy(self, session_id: str) -> None:
        """Explicitly invalidate a session and free its history."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                raise SessionNotFoundError(session_id)
            session.cleanup()
        logger.info(f"Destroyed session {session_id}")

    def list_sessions(self) -> list[Session]:
        """List all live sessions."""
        with self._lock:
            return list(self._sessions.values())

    def stats(self) -> SessionStats:
        """Totals across all live sessions."""
        with self._lock:
            sessions = list(self._sessions.values())
        return SessionStats(
            total_sessions=len(sessions),
            total_files=sum(s.total_files for s in sessions),
            total_dirty_files=sum(len(s.files.dirty_files()) for s in sessions),
        )

    @property
    def active_count(self) -> int:
        """Number of live sessions."""
        return len(self._sessions)

    def _evict_locked(self, session_id: str) -> None:
        session = self._sessions.pop(session_id)
        session.cleanup()
        self._expired_ids[session_id] = None
        while len(self._expired_ids) > EXPIRED_ID_MEMORY:
            self._expired_ids.popitem(last=False)

    async def _sweep_loop(self) -> None:
        """Background task to reap expired sessions."""
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()
