"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses → mapped HTTP status (400, 404, 409, 429)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for tracing
"""

import logging
import math
import time

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    ConflictAppError,
    NotFoundAppError,
    ThrottledAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ThrottledAppError, 429),
    (NotFoundAppError, 404),
    (ConflictAppError, 409),
    (ValidationAppError, 400),
)


def status_for(exc: AppError) -> int:
    """Return the HTTP status for a domain error (400 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _throttle_headers(exc: ThrottledAppError) -> dict[str, str]:
    result = exc.result
    if result is None:
        return {}

    retry_after_ms = result.retry_after or 0
    headers = {"Retry-After": str(math.ceil(retry_after_ms / 1000))}
    if settings.app.rate_limit_include_headers:
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(math.ceil(time.time() + retry_after_ms / 1000))
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses carry ``error.code``, ``error.message`` and
    ``error.request_id``; ``error.details`` is added when present. Throttling
    errors also carry ``error.retryAfter`` (milliseconds) and the
    ``Retry-After`` header (seconds).

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "path": request.url.path,
            "has_details": bool(exc.details),
        },
    )

    error_content: dict = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] = {}
    if isinstance(exc, ThrottledAppError):
        error_content["retryAfter"] = exc.result.retry_after if exc.result else None
        headers = _throttle_headers(exc)

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure and returns a generic message; no stack traces or
    exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "Internal server error. Please try again.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
