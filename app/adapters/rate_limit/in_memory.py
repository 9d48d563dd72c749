"""In-memory sliding-log rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Idle keys are swept at most once per ``sweep_interval_seconds``.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Mapping

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

DEFAULT_ACTION = "default"

# Minimum Retry-After handed back to a blocked caller
_MIN_RETRY_SECONDS = 1


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Keeps the timestamps of recent requests per ``user:action`` key.

    A request is allowed while fewer than ``max_requests`` timestamps fall
    inside the trailing window. Unknown actions use the ``default`` entry.
    """

    def __init__(
        self,
        *,
        limits: Mapping[str, tuple[int, int]],
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        """Initialize the limiter.

        Args:
            limits: action -> (max_requests, window_seconds). Must include "default".
            clock: Time source returning UNIX seconds.
            sweep_interval_seconds: How often idle keys are dropped.

        Raises:
            ValueError: If a limit is invalid or "default" is missing.
        """
        if DEFAULT_ACTION not in limits:
            raise ValueError("limits must include a 'default' action")
        for action, (max_requests, window_seconds) in limits.items():
            if max_requests < 1:
                raise ValueError(f"max_requests for {action!r} must be >= 1")
            if window_seconds < 1:
                raise ValueError(f"window_seconds for {action!r} must be >= 1")

        self._limits = dict(limits)
        self._longest_window = max(window for _, window in self._limits.values())
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._last_sweep = clock()
        self._lock = threading.RLock()
        self._hits: dict[str, deque[float]] = {}

    def _limit_for(self, action: str) -> tuple[int, int]:
        return self._limits.get(action, self._limits[DEFAULT_ACTION])

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = now
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and now - hits[0] >= self._longest_window:
                hits.popleft()
            if not hits:
                del self._hits[key]

    def consume(self, user_id: str, action: str) -> RateLimitResult:
        """Record a request if the budget allows it.

        Raises:
            ValueError: If user_id or action is empty.
        """
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        if not action:
            raise ValueError("action must be a non-empty string")

        max_requests, window_seconds = self._limit_for(action)
        now = self._clock()
        key = f"{user_id}:{action}"

        with self._lock:
            self._sweep(now)
            hits = self._hits.setdefault(key, deque())
            while hits and now - hits[0] >= window_seconds:
                hits.popleft()

            if len(hits) >= max_requests:
                reset_at = hits[0] + window_seconds
                retry_after = max(_MIN_RETRY_SECONDS, int(math.ceil(reset_at - now)))
                return RateLimitResult(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_at=int(math.ceil(reset_at)),
                    retry_after_seconds=retry_after,
                )

            hits.append(now)
            return RateLimitResult(
                allowed=True,
                limit=max_requests,
                remaining=max_requests - len(hits),
                reset_at=int(math.ceil(hits[0] + window_seconds)),
                retry_after_seconds=None,
            )

    def reset(self, user_id: str, action: str) -> None:
        with self._lock:
            self._hits.pop(f"{user_id}:{action}", None)
