"""HTTP middleware for request ID propagation and timing.

Every response carries the correlation id (taken from the incoming header
or freshly generated) and the request duration in milliseconds. The id is
kept in a ContextVar for the lifetime of the request so service-level log
lines can be correlated.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a correlation id to the request and time it.

    The id comes from the configured request id header (``LOG_REQUEST_ID_HEADER``)
    or is a fresh UUID. It is stored in a ContextVar for the duration of the
    request, so log lines from services and stores carry it too.

    Args:
        request: The incoming HTTP request.
        call_next: The next middleware or route handler.

    Returns:
        Response: The downstream response with the request id and
            ``X-Request-Duration-ms`` headers added.
    """
    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request_completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
