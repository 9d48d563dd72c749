"""Per-user request rate limiting for API routes.

Routes declare the action they belong to:

    @router.post("/send-records", dependencies=[Depends(enforce_rate_limit("send-email"))])

Budgets come from ``ACTION_RATE_LIMITS``; unknown actions use ``default``.
"""

from __future__ import annotations

import logging

from fastapi import Depends

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.auth import get_auth_user_id
from app.core.config import ACTION_RATE_LIMITS, settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide limiter; state must survive across requests."""
    global _limiter
    if _limiter is None:
        _limiter = InMemorySlidingWindowRateLimiter(limits=ACTION_RATE_LIMITS)
    return _limiter


def reset_rate_limiter() -> None:
    global _limiter
    _limiter = None


def enforce_rate_limit(action: str):
    """Build a dependency that consumes one request of ``action`` for the caller.

    Raises:
        RateLimitAppError: When the caller's budget for the action is spent (429).
    """

    async def _enforce(user_id: str = Depends(get_auth_user_id)) -> None:
        if not settings.app.rate_limit_enabled:
            return

        result = get_rate_limiter().consume(user_id, action)
        if result.allowed:
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "user_id": user_id,
                "action": action,
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        raise RateLimitAppError(
            code="rate_limited",
            message="Too many requests. Try again later.",
            details={
                "retry_after": result.retry_after_seconds or 0,
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
            },
        )

    return _enforce
