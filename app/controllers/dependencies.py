"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from starlette.requests import HTTPConnection

from app.pipelines.voice import VoiceOrchestrator


def get_orchestrator(connection: HTTPConnection) -> VoiceOrchestrator:
    """Return the orchestrator attached to the running application."""

    return connection.app.state.orchestrator


OrchestratorDep = Annotated[VoiceOrchestrator, Depends(get_orchestrator)]


__all__ = ["get_orchestrator", "OrchestratorDep"]
