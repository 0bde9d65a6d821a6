"""
Request Context Middleware.

Binds a request_id into the structlog context so every event logged while
serving a prediction (fan-out, merge, cache, audit) can be correlated.
An upstream X-Request-ID is honoured; otherwise one is generated.

Probe paths (/health, /metrics) are logged at debug level only.
"""

import time
import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """request_id binding, X-Response-Time header, completion log."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        log("request_completed", method=request.method, status=response.status_code, elapsed_ms=elapsed_ms)
        return response
