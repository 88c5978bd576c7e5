from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from app.services.artifacts import ArtifactStore
from app.services.cleanup import CleanupScheduler
from app.services.session_registry import SessionRegistry
from tests.conftest import FakeClock


def _scheduler(tmp_path: Path, clock: FakeClock, **kwargs) -> tuple[CleanupScheduler, SessionRegistry, ArtifactStore]:
    registry = SessionRegistry(clock=clock)
    artifacts = ArtifactStore(tmp_path)
    scheduler = CleanupScheduler(registry, artifacts, idle_threshold_seconds=1800, **kwargs)
    return scheduler, registry, artifacts


@pytest.mark.asyncio
async def test_cleanup_session_is_idempotent(tmp_path: Path) -> None:
    scheduler, registry, artifacts = _scheduler(tmp_path, FakeClock())
    await registry.open("s1")
    await artifacts.stage("s1", b"x", kind="response", extension="mp3")

    await scheduler.cleanup_session("s1")
    await scheduler.cleanup_session("s1")

    assert len(registry) == 0
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_run_once_expires_idle_sessions(tmp_path: Path) -> None:
    clock = FakeClock()
    scheduler, registry, artifacts = _scheduler(tmp_path, clock)
    await registry.open("idle")
    await artifacts.stage("idle", b"x", kind="response", extension="mp3")
    clock.advance(1000)
    await registry.open("active")
    clock.advance(900)

    assert await scheduler.run_once() == ["idle"]
    assert registry.ids() == ["active"]
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_sweep_after_disconnect_is_harmless(tmp_path: Path) -> None:
    clock = FakeClock()
    scheduler, registry, _ = _scheduler(tmp_path, clock)
    await registry.open("s1")
    await scheduler.cleanup_session("s1")
    clock.advance(5000)

    assert await scheduler.run_once() == []


@pytest.mark.asyncio
async def test_cleanup_never_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    scheduler, registry, _ = _scheduler(tmp_path, FakeClock())
    await registry.open("s1")

    async def broken_close(_session_id: str) -> bool:
        raise RuntimeError("registry offline")

    monkeypatch.setattr(registry, "close", broken_close)

    await scheduler.cleanup_session("s1")


@pytest.mark.asyncio
async def test_background_loop_sweeps_until_stopped(tmp_path: Path) -> None:
    clock = FakeClock()
    scheduler, registry, _ = _scheduler(tmp_path, clock, interval_seconds=0.01)
    await registry.open("s1")
    clock.advance(4000)

    scheduler.start()
    assert scheduler.running
    for _ in range(100):
        if len(registry) == 0:
            break
        await asyncio.sleep(0.01)
    await scheduler.stop()

    assert len(registry) == 0
    assert not scheduler.running
