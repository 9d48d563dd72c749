"""In-memory store.

Notes:
- Per-process only: state is lost on restart and not shared between workers.
- Thread-safe: one lock guards all shared state.
"""

from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from datetime import datetime

from app.adapters.store.base import AbstractSendStore, BounceRecord, SendRecord, StoredSettings


class InMemorySendStore(AbstractSendStore):
    """Dict-and-list backed implementation of ``AbstractSendStore``."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._settings: dict[str, StoredSettings] = {}
        self._sends: dict[str, list[SendRecord]] = defaultdict(list)
        self._bounces: dict[str, list[BounceRecord]] = defaultdict(list)

    def get_settings(self, user_id: str) -> StoredSettings | None:
        with self._lock:
            return self._settings.get(user_id)

    def save_settings(self, stored: StoredSettings) -> StoredSettings:
        with self._lock:
            self._settings[stored.user_id] = stored
            return stored

    def _update_settings(self, user_id: str, **changes) -> StoredSettings:
        """Apply ``changes`` to the row, starting from defaults when missing."""
        with self._lock:
            current = self._settings.get(user_id) or StoredSettings(user_id=user_id)
            updated = current.with_changes(**changes)
            self._settings[user_id] = updated
            return updated

    def upsert_account_status(self, user_id: str, status: str) -> StoredSettings:
        return self._update_settings(user_id, account_status=status)

    def set_sending_paused_until(self, user_id: str, until: datetime | None) -> StoredSettings:
        return self._update_settings(user_id, sending_paused_until=until)

    def add_send(self, user_id: str, sent_at: datetime, *, recipient: str | None = None) -> SendRecord:
        with self._lock:
            record = SendRecord(id=next(self._ids), user_id=user_id, sent_at=sent_at, recipient=recipient)
            self._sends[user_id].append(record)
            return record

    def _sends_between(self, user_id: str, since: datetime, until: datetime) -> list[datetime]:
        with self._lock:
            return [r.sent_at for r in self._sends.get(user_id, ()) if since <= r.sent_at < until]

    def count_sends(self, user_id: str, since: datetime, until: datetime) -> int:
        return len(self._sends_between(user_id, since, until))

    def first_send_at(self, user_id: str, since: datetime, until: datetime) -> datetime | None:
        return min(self._sends_between(user_id, since, until), default=None)

    def last_send_at(self, user_id: str, until: datetime) -> datetime | None:
        with self._lock:
            return max(
                (r.sent_at for r in self._sends.get(user_id, ()) if r.sent_at < until),
                default=None,
            )

    def add_bounce(self, user_id: str, occurred_at: datetime) -> BounceRecord:
        with self._lock:
            record = BounceRecord(id=next(self._ids), user_id=user_id, occurred_at=occurred_at)
            self._bounces[user_id].append(record)
            return record

    def count_bounces(self, user_id: str, since: datetime, until: datetime) -> int:
        with self._lock:
            return sum(1 for r in self._bounces.get(user_id, ()) if since <= r.occurred_at < until)

    def prune(self, before: datetime) -> int:
        deleted = 0
        with self._lock:
            for user_id, records in self._sends.items():
                kept = [r for r in records if r.sent_at >= before]
                deleted += len(records) - len(kept)
                self._sends[user_id] = kept
            for user_id, bounces in self._bounces.items():
                kept_bounces = [b for b in bounces if b.occurred_at >= before]
                deleted += len(bounces) - len(kept_bounces)
                self._bounces[user_id] = kept_bounces
        return deleted
