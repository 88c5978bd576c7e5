"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

WS_EVENT_COUNTER = Counter(
    "voice_ws_events_total",
    "Websocket events exchanged with clients",
    ("direction", "event"),
)

ADMISSION_REJECTIONS = Counter(
    "voice_admission_rejections_total",
    "Requests rejected by the rate governor",
    ("reason",),
)

STAGE_LATENCY = Histogram(
    "voice_pipeline_stage_duration_seconds",
    "Duration of each voice pipeline stage",
    ("stage",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

STAGE_FAILURES = Counter(
    "voice_pipeline_stage_failures_total",
    "Recoverable failures per voice pipeline stage",
    ("stage",),
)

ROUTED_RESPONSES = Counter(
    "voice_routed_responses_total",
    "Transcripts routed to each handler",
    ("handler",),
)

ACTIVE_SESSIONS = Gauge(
    "voice_active_sessions",
    "Sessions currently held by the registry",
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_ws_event(direction: str, event: str) -> None:
    WS_EVENT_COUNTER.labels(direction=direction, event=event or "unknown").inc()


def observe_rejection(reason: str) -> None:
    ADMISSION_REJECTIONS.labels(reason=reason).inc()


def observe_stage(stage: str, duration_seconds: float, *, failed: bool = False) -> None:
    STAGE_LATENCY.labels(stage=stage).observe(max(0.0, duration_seconds))
    if failed:
        STAGE_FAILURES.labels(stage=stage).inc()


def observe_route(handler: str) -> None:
    ROUTED_RESPONSES.labels(handler=handler).inc()


def set_active_sessions(count: int) -> None:
    ACTIVE_SESSIONS.set(count)
