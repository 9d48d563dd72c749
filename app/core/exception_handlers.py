"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses -> status by error kind (400, 401, 404, 429, 500)
- Request body or query that fails schema validation -> 400
- Unexpected Exception -> generic 500 (safety net)
- Body is always ``{"error": <message>, "code": <code>, "request_id": ...}``
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    NotFoundAppError,
    PersistenceAppError,
    RateLimitAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 401),
    (NotFoundAppError, 404),
    (RateLimitAppError, 429),
    (PersistenceAppError, 500),
)


def status_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _error_body(message: str, code: str) -> dict:
    return {"error": message, "code": code, "request_id": get_request_id()}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error with the status code of its kind."""
    status_code = status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )

    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitAppError) and exc.details and settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(exc.details.get("retry_after", 0))
        headers["X-RateLimit-Limit"] = str(exc.details.get("limit", ""))
        headers["X-RateLimit-Remaining"] = str(exc.details.get("remaining", 0))
        headers["X-RateLimit-Reset"] = str(exc.details.get("reset_at", ""))

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.message, exc.code),
        headers=headers or None,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed input as a 400 in the common error shape.

    Args:
        request: The request that failed validation.
        exc: FastAPI's validation error with per-field details.

    Returns:
        JSONResponse: 400 with ``{"error", "code", "request_id"}``.
    """
    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "error_count": len(exc.errors())},
    )
    return JSONResponse(status_code=400, content=_error_body("Invalid request", "invalid_request"))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for anything unexpected. Never leaks exception text to the client."""
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
        content=_error_body(
            "An unexpected error occurred. Please try again later.",
            "internal_server_error",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
