"""
Global Error Handler Middleware.

Last line of defence for anything the routers did not answer themselves.
Oracle failures never get here; they end in a fallback forecast.

- SkySniperError subclasses keep their own status, code and message
- Anything else becomes an opaque 500 carrying an error_id for log lookup
"""

import uuid

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from skysniper.config import settings
from skysniper.exceptions import ErrorCode, SkySniperError

logger = structlog.get_logger(__name__)

GENERIC_MESSAGE = "An internal error occurred. Please try again later."


def error_body(
    error_id: str,
    status_code: int,
    code: ErrorCode,
    message: str,
) -> dict:
    return {
        "error": message,
        "code": code.value,
        "error_id": error_id,
        "status": status_code,
    }


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Outermost middleware. Turns stray exceptions into JSON."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except SkySniperError as exc:
            error_id = str(uuid.uuid4())
            logger.warning(
                "application_error",
                error_id=error_id,
                code=exc.code.value,
                error=exc.message,
                details=exc.details,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=error_body(error_id, exc.status_code, exc.code, exc.message),
            )
        except Exception as exc:
            error_id = str(uuid.uuid4())
            logger.exception(
                "unhandled_exception",
                error_id=error_id,
                path=request.url.path,
                method=request.method,
                error=str(exc),
            )
            body = error_body(error_id, 500, ErrorCode.INTERNAL_ERROR, GENERIC_MESSAGE)
            if settings.debug:
                body["debug_hint"] = type(exc).__name__
            return JSONResponse(status_code=500, content=body)
