"""In-memory registry of live voice sessions keyed by connection id.

Every read and write goes through a single ``asyncio.Lock`` so the periodic
idle sweep and the per-connection handlers never observe a half-updated
record. Callers receive immutable snapshots; only the registry mutates the
underlying :class:`_SessionRecord` objects.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class SessionRegistryError(RuntimeError):
    """Base class for registry lookup failures."""


class DuplicateSessionError(SessionRegistryError):
    """Raised when opening a session id that is already registered."""


class UnknownSessionError(SessionRegistryError):
    """Raised when a session id is not (or no longer) registered."""


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session handed to callers outside the registry."""

    id: str
    request_count: int
    last_request_time: float
    connected_at: float
    client_ip: Optional[str]
    in_flight: int


@dataclass
class _SessionRecord:
    id: str
    request_count: int
    last_request_time: float
    connected_at: float
    client_ip: Optional[str] = None
    in_flight: int = 0

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            request_count=self.request_count,
            last_request_time=self.last_request_time,
            connected_at=self.connected_at,
            client_ip=self.client_ip,
            in_flight=self.in_flight,
        )


AdmissionCheck = Callable[[SessionSnapshot, float], None]


class SessionRegistry:
    """Own the process-wide table of sessions behind one lock."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or time.time
        self._lock = asyncio.Lock()
        self._sessions: dict[str, _SessionRecord] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def ids(self) -> list[str]:
        return list(self._sessions)

    async def open(self, session_id: str, *, client_ip: str | None = None) -> SessionSnapshot:
        """Register a fresh session with a zero request count."""

        async with self._lock:
            if session_id in self._sessions:
                raise DuplicateSessionError(f"Session {session_id} already exists.")
            now = self._clock()
            record = _SessionRecord(
                id=session_id,
                request_count=0,
                last_request_time=now,
                connected_at=now,
                client_ip=client_ip,
            )
            self._sessions[session_id] = record
            return record.snapshot()

    async def get(self, session_id: str) -> SessionSnapshot:
        async with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise UnknownSessionError(f"Session {session_id} is not registered.")
            return record.snapshot()

    async def touch(
        self,
        session_id: str,
        *,
        check: AdmissionCheck | None = None,
    ) -> SessionSnapshot:
        """Count one accepted request and mark it in flight.

        ``check`` runs under the lock against the pre-update snapshot; any
        exception it raises aborts the update and propagates unchanged.
        """

        async with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise UnknownSessionError(f"Session {session_id} is not registered.")
            now = self._clock()
            if check is not None:
                check(record.snapshot(), now)
            record.request_count += 1
            record.last_request_time = now
            record.in_flight += 1
            return record.snapshot()

    async def release(self, session_id: str) -> None:
        """Mark one in-flight request of the session as finished."""

        async with self._lock:
            record = self._sessions.get(session_id)
            if record is not None and record.in_flight > 0:
                record.in_flight -= 1

    async def close(self, session_id: str) -> bool:
        """Remove the session; repeated calls are no-ops."""

        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def sweep(self, max_idle: float) -> list[str]:
        """Drop sessions idle for longer than ``max_idle`` seconds."""

        async with self._lock:
            now = self._clock()
            expired = [
                session_id
                for session_id, record in self._sessions.items()
                if record.in_flight == 0 and now - record.last_request_time > max_idle
            ]
            for session_id in expired:
                del self._sessions[session_id]

        if expired:
            logger.info("Idle sweep removed %d session(s): %s", len(expired), expired)
        return expired


__all__ = [
    "SessionRegistry",
    "SessionSnapshot",
    "SessionRegistryError",
    "DuplicateSessionError",
    "UnknownSessionError",
]
