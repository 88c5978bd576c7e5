"""Websocket endpoint for voice sessions.

One connection is one session. Admission runs inline as events arrive;
admitted pipelines run as tasks serialized by a per-connection lock so they
complete in arrival order while the receive loop stays free to handle
``interrupt`` and disconnects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from app.controllers.dependencies import OrchestratorDep
from app.pipelines.voice import VoiceOrchestrator
from app.services.rate_governor import RateLimitExceededError
from app.telemetry import observe_rejection, observe_ws_event
from app.views.events import (
    ServerEvent,
    SessionInfo,
    decode_audio_payload,
    encode_payload,
    parse_client_event,
)

router = APIRouter(tags=["voice"])

logger = logging.getLogger(__name__)


class EventChannel:
    """Serialize outbound events on one websocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket
        self._lock = asyncio.Lock()
        self._closed = False

    def close(self) -> None:
        self._closed = True

    async def emit(self, event: str, data: Any = None) -> None:
        if self._closed:
            logger.debug("Dropping %s event for closed connection", event)
            return
        message = ServerEvent(event=event, data=encode_payload(data)).model_dump()
        async with self._lock:
            try:
                await self._ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                self._closed = True
                logger.debug("Could not deliver %s event; client is gone", event)
                return
        observe_ws_event("out", event)


class VoiceConnection:
    """Receive loop and task bookkeeping for one websocket session."""

    def __init__(
        self,
        websocket: WebSocket,
        orchestrator: VoiceOrchestrator,
        *,
        session_id: str,
        client_ip: str | None,
    ) -> None:
        self._ws = websocket
        self._orchestrator = orchestrator
        self._session_id = session_id
        self._client_ip = client_ip
        self._channel = EventChannel(websocket)
        self._pipeline_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        # Admitted audio requests that have not entered the pipeline yet.
        self._queued: set[object] = set()

    @property
    def channel(self) -> EventChannel:
        return self._channel

    async def run(self) -> None:
        while True:
            message = await self._ws.receive()
            if message["type"] == "websocket.disconnect":
                return

            if message.get("bytes") is not None:
                observe_ws_event("in", "audioStream")
                await self._on_audio(message["bytes"])
                continue

            raw = message.get("text")
            if raw is None:
                continue
            await self._dispatch_text(raw)

    async def _dispatch_text(self, raw: str) -> None:
        try:
            event = parse_client_event(raw)
        except ValueError as exc:
            observe_ws_event("in", "invalid")
            await self._channel.emit("error", str(exc))
            return

        observe_ws_event("in", event.event)
        if event.event == "audioStream":
            try:
                audio = decode_audio_payload(event.data)
            except ValueError as exc:
                await self._channel.emit("error", str(exc))
                return
            await self._on_audio(audio)
        elif event.event == "requestGreeting":
            name = event.data if isinstance(event.data, str) else ""
            self._spawn(self._process_greeting(name))
        elif event.event == "interrupt":
            cancelled = await self.cancel_pending()
            logger.info("Interrupt for session %s cancelled %d task(s)", self._session_id, cancelled)
            await self._channel.emit("interrupted")

    async def _on_audio(self, audio: bytes) -> None:
        admitted = await self._orchestrator.admit(self._session_id, self._client_ip, self._channel)
        if admitted:
            ticket = object()
            self._queued.add(ticket)
            self._spawn(self._process_audio(audio, ticket))

    async def _process_audio(self, audio: bytes, ticket: object) -> None:
        async with self._pipeline_lock:
            self._queued.discard(ticket)
            await self._orchestrator.handle_audio(self._session_id, audio, self._channel)

    async def _process_greeting(self, name: str) -> None:
        async with self._pipeline_lock:
            await self._orchestrator.handle_greeting(self._session_id, name, self._channel)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def cancel_pending(self) -> int:
        """Cancel queued and in-flight pipeline tasks and wait for them."""

        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        # A task cancelled before it reached the pipeline never released its
        # admission, including one cancelled before its first step.
        for _ in range(len(self._queued)):
            await self._orchestrator.registry.release(self._session_id)
        self._queued.clear()
        return len(tasks)

    async def close(self) -> None:
        await self.cancel_pending()
        self._channel.close()
        await self._orchestrator.disconnect(self._session_id)


@router.websocket("/ws")
async def voice_socket(websocket: WebSocket, orchestrator: OrchestratorDep) -> None:
    """Bidirectional event channel for one voice session."""

    client_ip = websocket.client.host if websocket.client else None
    try:
        await orchestrator.governor.ip_limiter.consume(client_ip)
    except RateLimitExceededError as exc:
        observe_rejection("ip_rate_limit")
        logger.info("Refusing websocket from %s: %s", client_ip, exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(exc))
        return

    await websocket.accept()
    session_id = uuid4().hex
    await orchestrator.connect(session_id, client_ip=client_ip)

    connection = VoiceConnection(
        websocket,
        orchestrator,
        session_id=session_id,
        client_ip=client_ip,
    )
    try:
        await connection.channel.emit("session", SessionInfo(id=session_id))
        await connection.run()
    except WebSocketDisconnect:
        pass
    finally:
        await connection.close()


@router.get("/sessions/count")
async def active_session_count(orchestrator: OrchestratorDep) -> dict[str, int]:
    """Number of sessions currently held by the registry."""

    return {"active_sessions": len(orchestrator.registry)}


__all__ = ["router", "EventChannel", "VoiceConnection"]
