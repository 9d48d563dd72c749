"""Store interface and the immutable records it returns.

All timestamps crossing this interface are timezone-aware UTC datetimes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime


@dataclass(frozen=True)
class StoredSettings:
    """A persisted user settings row.

    Quota fields set to ``None`` fall back to configured defaults.
    """

    user_id: str
    application_mode: str = "MANUAL"
    account_status: str = "active"
    max_sends_per_day: int | None = None
    max_sends_per_hour: int | None = None
    send_delay_seconds: int | None = None
    bounce_pause_hours: int | None = None
    sending_paused_until: datetime | None = None

    def with_changes(self, **changes) -> "StoredSettings":
        return replace(self, **changes)


@dataclass(frozen=True)
class SendRecord:
    id: int
    user_id: str
    sent_at: datetime
    recipient: str | None = None


@dataclass(frozen=True)
class BounceRecord:
    id: int
    user_id: str
    occurred_at: datetime


class AbstractSendStore(ABC):
    """Interface for the settings/send/bounce persistence collaborator.

    Implementations raise ``PersistenceAppError`` when the backing store
    fails. Intervals are half-open: ``since <= ts < until``.
    """

    @abstractmethod
    def get_settings(self, user_id: str) -> StoredSettings | None:
        """Return the user's settings row, or None when it doesn't exist."""
        raise NotImplementedError

    @abstractmethod
    def save_settings(self, stored: StoredSettings) -> StoredSettings:
        """Insert or fully replace a settings row.

        The services never call this; it is the seeding and admin entry point
        for per-user overrides (quota fields, mode) that have no HTTP route.

        Args:
            stored: Complete settings to persist for ``stored.user_id``.

        Returns:
            The settings as persisted.
        """
        raise NotImplementedError

    @abstractmethod
    def upsert_account_status(self, user_id: str, status: str) -> StoredSettings:
        """Set ``account_status``, creating a default row if needed."""
        raise NotImplementedError

    @abstractmethod
    def set_sending_paused_until(self, user_id: str, until: datetime | None) -> StoredSettings:
        """Set or clear the timed pause, creating a default row if needed."""
        raise NotImplementedError

    @abstractmethod
    def add_send(self, user_id: str, sent_at: datetime, *, recipient: str | None = None) -> SendRecord:
        """Append one send record. Every call inserts a new record.

        Args:
            user_id: Owner of the send.
            sent_at: Time of the send.
            recipient: Optional recipient address, kept for auditing.

        Returns:
            The stored record with its assigned id.
        """
        raise NotImplementedError

    @abstractmethod
    def count_sends(self, user_id: str, since: datetime, until: datetime) -> int:
        """Number of sends with ``since <= sent_at < until``."""
        raise NotImplementedError

    @abstractmethod
    def first_send_at(self, user_id: str, since: datetime, until: datetime) -> datetime | None:
        """Timestamp of the oldest send inside the interval."""
        raise NotImplementedError

    @abstractmethod
    def last_send_at(self, user_id: str, until: datetime) -> datetime | None:
        """Timestamp of the most recent send strictly before ``until``."""
        raise NotImplementedError

    @abstractmethod
    def add_bounce(self, user_id: str, occurred_at: datetime) -> BounceRecord:
        """Append one bounce record."""
        raise NotImplementedError

    @abstractmethod
    def count_bounces(self, user_id: str, since: datetime, until: datetime) -> int:
        """Number of bounces with ``since <= occurred_at < until``."""
        raise NotImplementedError

    @abstractmethod
    def prune(self, before: datetime) -> int:
        """Delete send and bounce records older than ``before``.

        Returns:
            Number of deleted records.
        """
        raise NotImplementedError
