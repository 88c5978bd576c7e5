"""Application middleware package."""

from .logging import StructuredLoggingMiddleware
from .rate_limit import IpRateLimitMiddleware
from .telemetry import TelemetryMiddleware

__all__ = ["IpRateLimitMiddleware", "StructuredLoggingMiddleware", "TelemetryMiddleware"]
