from __future__ import annotations

import pytest

from app.services.rate_governor import (
    FixedWindowRateLimiter,
    RateLimitExceededError,
    SessionLimitExceededError,
    SessionRateGovernor,
    TooManyRequestsError,
)
from app.services.session_registry import SessionRegistry
from tests.conftest import FakeClock


def _governor(clock: FakeClock, *, ip_limit: int = 100) -> tuple[SessionRateGovernor, SessionRegistry]:
    registry = SessionRegistry(clock=clock)
    limiter = FixedWindowRateLimiter(limit=ip_limit, window_seconds=900, now_fn=clock)
    governor = SessionRateGovernor(registry, limiter, max_requests=10, cooldown_seconds=1.0)
    return governor, registry


@pytest.mark.asyncio
async def test_first_ten_requests_pass_and_eleventh_is_rejected() -> None:
    clock = FakeClock()
    governor, registry = _governor(clock)
    await registry.open("s1")

    for expected in range(1, 11):
        clock.advance(1.0)
        session = await governor.admit("s1", "1.2.3.4")
        await registry.release("s1")
        assert session.request_count == expected

    clock.advance(1.0)
    with pytest.raises(SessionLimitExceededError):
        await governor.admit("s1", "1.2.3.4")
    assert (await registry.get("s1")).request_count == 10


@pytest.mark.asyncio
async def test_cooldown_starts_when_the_session_opens() -> None:
    clock = FakeClock()
    governor, registry = _governor(clock)
    opened = await registry.open("s1")

    clock.advance(0.2)
    with pytest.raises(TooManyRequestsError):
        await governor.admit("s1", None)
    assert (await registry.get("s1")).request_count == 0

    clock.now = opened.connected_at + 1.0
    session = await governor.admit("s1", None)
    assert session.request_count == 1


@pytest.mark.asyncio
async def test_cooldown_rejects_requests_closer_than_one_second() -> None:
    clock = FakeClock()
    governor, registry = _governor(clock)
    await registry.open("s1")
    clock.advance(1.0)
    await governor.admit("s1", None)

    clock.advance(0.5)
    with pytest.raises(TooManyRequestsError):
        await governor.admit("s1", None)
    assert (await registry.get("s1")).request_count == 1

    clock.advance(0.5)
    session = await governor.admit("s1", None)
    assert session.request_count == 2


@pytest.mark.asyncio
async def test_ip_ceiling_is_checked_before_session_limits() -> None:
    clock = FakeClock()
    governor, registry = _governor(clock, ip_limit=1)
    await registry.open("s1")
    clock.advance(1.0)
    await governor.admit("s1", "9.9.9.9")

    # Inside the cooldown as well, but the IP ceiling wins.
    with pytest.raises(RateLimitExceededError):
        await governor.admit("s1", "9.9.9.9")
    assert (await registry.get("s1")).request_count == 1


@pytest.mark.asyncio
async def test_fixed_window_limiter_rejects_then_resets() -> None:
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(limit=2, window_seconds=10, now_fn=clock)

    await limiter.consume("a")
    await limiter.consume("a")
    clock.advance(4)
    with pytest.raises(RateLimitExceededError) as exc:
        await limiter.consume("a")
    assert exc.value.limit == 2
    assert exc.value.window_seconds == 10
    assert exc.value.retry_in == pytest.approx(6)

    await limiter.consume("b")

    clock.advance(6)
    await limiter.consume("a")


@pytest.mark.asyncio
async def test_fixed_window_limiter_disabled_with_zero_limit() -> None:
    limiter = FixedWindowRateLimiter(limit=0, window_seconds=10, now_fn=FakeClock())

    for _ in range(1000):
        await limiter.consume("a")
