"""Admission control for voice requests.

Checks run in a fixed order and the first failure wins:

1. per-IP fixed-window ceiling (shared with HTTP middleware and handshakes),
2. per-session lifetime request ceiling,
3. per-session cooldown between accepted requests.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from app.config.settings import settings
from app.services.session_registry import SessionRegistry, SessionSnapshot

TimeFn = Callable[[], float]


class AdmissionError(RuntimeError):
    """Base class for requests rejected before entering the pipeline."""

    message = "Request rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class RateLimitExceededError(AdmissionError):
    """Raised when a client IP exhausts its fixed-window allowance."""

    message = "Too many requests from this IP, please try again later"

    def __init__(self, *, retry_in: float, limit: int, window_seconds: float) -> None:
        super().__init__()
        self.retry_in = retry_in
        self.limit = limit
        self.window_seconds = window_seconds


class SessionLimitExceededError(AdmissionError):
    """Raised once a session has used up its lifetime request budget."""

    message = "Session request limit exceeded"


class TooManyRequestsError(AdmissionError):
    """Raised when a request arrives inside the session cooldown."""

    message = "Too many requests"


@dataclass
class _Window:
    started_at: float
    hits: int


class FixedWindowRateLimiter:
    """Count hits per key over fixed windows.

    Disabled if limit <= 0 or window_seconds <= 0.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        now_fn: TimeFn | None = None,
    ) -> None:
        self.limit = max(0, int(limit))
        self.window_seconds = max(0.0, float(window_seconds))
        self._now = now_fn or time.monotonic
        self._windows: dict[str, _Window] = {}
        self._lock = asyncio.Lock()
        self._enabled = self.limit > 0 and self.window_seconds > 0

    async def consume(self, key: str | None) -> None:
        if not self._enabled:
            return

        bucket = key or "unknown"
        async with self._lock:
            now = self._now()
            self._evict_expired(now)
            window = self._windows.get(bucket)
            if window is None:
                window = _Window(started_at=now, hits=0)
                self._windows[bucket] = window

            if window.hits >= self.limit:
                retry_in = (window.started_at + self.window_seconds) - now
                raise RateLimitExceededError(
                    retry_in=max(0.0, retry_in),
                    limit=self.limit,
                    window_seconds=self.window_seconds,
                )
            window.hits += 1

    def _evict_expired(self, now: float) -> None:
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]


class SessionRateGovernor:
    """Apply the per-session ceiling and cooldown atomically with the touch."""

    def __init__(
        self,
        registry: SessionRegistry,
        ip_limiter: FixedWindowRateLimiter,
        *,
        max_requests: int | None = None,
        cooldown_seconds: float | None = None,
    ) -> None:
        self._registry = registry
        self._ip_limiter = ip_limiter
        self._max_requests = (
            settings.rate_limit.session_max_requests
            if max_requests is None
            else max_requests
        )
        self._cooldown_seconds = (
            settings.rate_limit.session_cooldown_seconds
            if cooldown_seconds is None
            else cooldown_seconds
        )

    @property
    def ip_limiter(self) -> FixedWindowRateLimiter:
        return self._ip_limiter

    async def admit(self, session_id: str, client_ip: str | None) -> SessionSnapshot:
        """Run every admission check and count the request when it passes."""

        await self._ip_limiter.consume(client_ip)
        return await self._registry.touch(session_id, check=self._check_session)

    def _check_session(self, session: SessionSnapshot, now: float) -> None:
        if session.request_count >= self._max_requests:
            raise SessionLimitExceededError()
        # Opening a session stamps last_request_time, so the cooldown covers
        # audio sent right after connecting too.
        if now - session.last_request_time < self._cooldown_seconds:
            raise TooManyRequestsError()


def build_ip_rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        limit=settings.rate_limit.ip_max_requests,
        window_seconds=settings.rate_limit.ip_window_seconds,
    )


__all__ = [
    "AdmissionError",
    "RateLimitExceededError",
    "SessionLimitExceededError",
    "TooManyRequestsError",
    "FixedWindowRateLimiter",
    "SessionRateGovernor",
    "build_ip_rate_limiter",
]
