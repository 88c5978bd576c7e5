from __future__ import annotations

from pathlib import Path

import pytest

from app.services.artifacts import ArtifactError, ArtifactStore, StagedArtifact


@pytest.mark.asyncio
async def test_stage_read_delete(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)

    staged = await store.stage("s1", b"ID3data", kind="response", extension="mp3", request_id="r1")

    assert staged.path == tmp_path / "response-s1-r1.mp3"
    assert await store.read(staged) == b"ID3data"
    await store.delete(staged)
    assert not staged.path.exists()
    # Deleting again is a no-op.
    await store.delete(staged)


@pytest.mark.asyncio
async def test_concurrent_requests_never_share_a_file(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)

    first = await store.stage("s1", b"one", kind="response", extension="mp3")
    second = await store.stage("s1", b"two", kind="response", extension="mp3")

    assert first.path != second.path
    assert await store.read(first) == b"one"
    assert await store.read(second) == b"two"


@pytest.mark.asyncio
async def test_empty_payload_is_rejected(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)

    with pytest.raises(ArtifactError):
        await store.stage("s1", b"", kind="response", extension="mp3")
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_purge_session_only_touches_that_session(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)
    await store.stage("aaa", b"1", kind="response", extension="mp3")
    await store.stage("aaa", b"2", kind="greeting", extension="mp3")
    keep = await store.stage("bbb", b"3", kind="response", extension="mp3")

    assert await store.purge_session("aaa") == 2
    assert [path.name for path in tmp_path.iterdir()] == [keep.path.name]
    assert await store.purge_session("aaa") == 0


@pytest.mark.asyncio
async def test_discard_reports_failure_instead_of_raising(tmp_path: Path) -> None:
    store = ArtifactStore(tmp_path)
    directory = tmp_path / "response-s1-r1.mp3"
    directory.mkdir()
    bogus = StagedArtifact(session_id="s1", request_id="r1", kind="response", path=directory)

    assert await store.discard(bogus) is False
