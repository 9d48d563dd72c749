"""Rate limiter interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a consume call.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window for the action.
        remaining: Requests left in the window after this call (0 when blocked).
        reset_at: UNIX epoch seconds when the oldest counted request expires.
        retry_after_seconds: Suggested wait when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for per-user, per-action rate limiters."""

    @abstractmethod
    def consume(self, user_id: str, action: str) -> RateLimitResult:
        """Count one request by ``user_id`` for ``action``."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, user_id: str, action: str) -> None:
        """Forget all requests recorded for the pair."""
        raise NotImplementedError
