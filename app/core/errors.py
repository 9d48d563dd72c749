"""Application-level exception types.

Services and store adapters raise these so the HTTP layer can branch on
the error kind rather than on message text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    allowed_values: list[str]
    actual_value: str
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    operation: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when an argument is outside its allowed set."""


class AuthenticationAppError(AppError):
    """Raised when no valid user can be resolved for the request."""


class NotFoundAppError(AppError):
    """Raised when a required row does not exist."""


class PersistenceAppError(AppError):
    """Raised when the backing store is unreachable or a write fails."""


class RateLimitAppError(AppError):
    """Raised when a caller exceeds an action's request budget."""
