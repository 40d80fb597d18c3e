"""HTTP middleware for request correlation.

Every request/response pair carries a request ID, and every log line emitted
while handling the request carries that ID plus a hash of the client key.

Usage:
    app.middleware("http")(request_context_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.client_identity import client_key, hash_client_key
from app.core.config import settings
from app.core.logging import bind_request_context, clear_request_context

logger = logging.getLogger(__name__)


async def request_context_middleware(request: Request, call_next) -> Response:
    """Bind request_id and client_hash to the logging context for this request.

    The incoming ``X-Request-ID`` header (name configurable via
    ``LOG_REQUEST_ID_HEADER``) is reused when present; otherwise a UUID4 is
    generated. The ID is echoed on the response together with
    ``X-Request-Duration-ms``.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with correlation headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    bind_request_context(request_id, hash_client_key(client_key(request)))
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_context()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
