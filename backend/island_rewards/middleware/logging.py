"""
Request logging middleware with correlation IDs.

Each request gets a correlation ID bound to the structlog context and echoed
back in the X-Correlation-ID header, including on unhandled 500s.

Never logs IPs, query strings or Authorization / X-API-Key headers.
"""

import re
import secrets
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

CORRELATION_HEADER = "X-Correlation-ID"
QUIET_PATHS = frozenset({"/health"})
_CORRELATION_RE = re.compile(r"^[a-f0-9]{8}$")


def generate_correlation_id() -> str:
    """Generate an 8-character correlation ID."""
    return secrets.token_hex(4)


def resolve_correlation_id(request: Request) -> str:
    """Reuse a well-formed upstream correlation ID, otherwise mint one."""
    incoming = request.headers.get(CORRELATION_HEADER, "").lower()
    if _CORRELATION_RE.match(incoming):
        return incoming
    return generate_correlation_id()


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log request start/end with timing and tag responses with the correlation ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = resolve_correlation_id(request)
        start_time = time.perf_counter()
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        logger = structlog.get_logger()
        log = logger.debug if path in QUIET_PATHS else logger.info

        log("request_started", method=request.method, path=path)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round(duration_ms, 2),
                exc_info=True,
            )
            response = JSONResponse({"detail": "Internal Server Error"}, status_code=500)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        duration_ms = (time.perf_counter() - start_time) * 1000
        log(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
