"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports ``app.core.config``
so the global settings object is built for tests.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEYS", "test-key-alice:alice,test-key-bob:bob")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.adapters.store.in_memory import InMemorySendStore  # noqa: E402
from app.core.config import SendLimitSettings  # noqa: E402

NOW = datetime(2026, 10, 18, 15, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def store() -> InMemorySendStore:
    return InMemorySendStore()


@pytest.fixture
def limits() -> SendLimitSettings:
    return SendLimitSettings(
        max_per_day=10,
        max_per_hour=8,
        delay_seconds=0,
        bounce_threshold=3,
        bounce_pause_hours=24,
        window_mode="calendar",
        window_seconds=86400,
        window_timezone="UTC",
        retention_days=30,
    )


@pytest.fixture
def alice_headers() -> dict[str, str]:
    return {"X-API-Key": "test-key-alice"}
