"""Per-IP request ceiling for plain HTTP routes."""

from __future__ import annotations

import math

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.services.rate_governor import RateLimitExceededError
from app.telemetry import observe_rejection


class IpRateLimitMiddleware(BaseHTTPMiddleware):
    """Reject HTTP requests once the client IP exhausts its window."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        orchestrator = getattr(request.app.state, "orchestrator", None)
        if orchestrator is None:
            return await call_next(request)

        client_ip = request.client.host if request.client else None
        try:
            await orchestrator.governor.ip_limiter.consume(client_ip)
        except RateLimitExceededError as exc:
            observe_rejection("ip_rate_limit")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": str(exc)},
                headers={"Retry-After": str(max(1, math.ceil(exc.retry_in)))},
            )
        return await call_next(request)
