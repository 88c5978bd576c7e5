"""Prometheus instrumentation for plain HTTP routes."""

from __future__ import annotations

import time
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.telemetry import observe_request

_UNTRACKED_PATHS = frozenset({"/metrics"})


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Record count and latency per route; scrapes of ``/metrics`` are skipped."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in _UNTRACKED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            observe_request(request.method, self._route_label(request), 500, time.perf_counter() - started)
            raise

        observe_request(
            request.method,
            self._route_label(request),
            response.status_code,
            time.perf_counter() - started,
        )
        return response

    @staticmethod
    def _route_label(request: Request) -> str:
        # Route templates keep label cardinality bounded.
        scope_route: Any = request.scope.get("route")
        path = getattr(scope_route, "path", None)
        return path or request.url.path
