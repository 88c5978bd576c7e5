"""Telemetry helpers and metrics."""

from .metrics import (
    ACTIVE_SESSIONS,
    ADMISSION_REJECTIONS,
    ERROR_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    ROUTED_RESPONSES,
    STAGE_FAILURES,
    STAGE_LATENCY,
    WS_EVENT_COUNTER,
    observe_rejection,
    observe_request,
    observe_route,
    observe_stage,
    observe_ws_event,
    set_active_sessions,
)

__all__ = [
    "ACTIVE_SESSIONS",
    "ADMISSION_REJECTIONS",
    "ERROR_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "ROUTED_RESPONSES",
    "STAGE_FAILURES",
    "STAGE_LATENCY",
    "WS_EVENT_COUNTER",
    "observe_rejection",
    "observe_request",
    "observe_route",
    "observe_stage",
    "observe_ws_event",
    "set_active_sessions",
]
