"""SQLAlchemy-backed store.

Timestamps are stored as naive UTC (SQLite has no timezone support) and
converted back to aware UTC datetimes on the way out. Every public method
runs in its own short transaction; database failures surface as
``PersistenceAppError``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.adapters.store.base import AbstractSendStore, BounceRecord, SendRecord, StoredSettings
from app.core.database import session_scope
from app.core.errors import PersistenceAppError
from app.models import BounceRecordRow, SendRecordRow, UserSettingsRow

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_stored(row: UserSettingsRow) -> StoredSettings:
    return StoredSettings(
        user_id=row.user_id,
        application_mode=row.application_mode,
        account_status=row.account_status,
        max_sends_per_day=row.max_sends_per_day,
        max_sends_per_hour=row.max_sends_per_hour,
        send_delay_seconds=row.send_delay_seconds,
        bounce_pause_hours=row.bounce_pause_hours,
        sending_paused_until=_from_db(row.sending_paused_until),
    )


class SqlAlchemySendStore(AbstractSendStore):
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def _run(self, operation: str, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` in its own transaction.

        Args:
            operation: Name used in logs and error details.
            fn: Work to run against the open session.

        Returns:
            Whatever ``fn`` returns.

        Raises:
            PersistenceAppError: Any SQLAlchemy failure, with the original as cause.
        """
        try:
            with session_scope(self._session_factory) as session:
                return fn(session)
        except SQLAlchemyError as exc:
            logger.error(
                "store.operation_failed",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise PersistenceAppError(
                code="persistence_failure",
                message="The data store is unavailable. Please try again later.",
                details={"operation": operation},
            ) from exc

    # --- settings ---

    def get_settings(self, user_id: str) -> StoredSettings | None:
        def _get(session: Session) -> StoredSettings | None:
            row = session.get(UserSettingsRow, user_id)
            return _to_stored(row) if row is not None else None

        return self._run("get_settings", _get)

    def _get_or_create(self, session: Session, user_id: str) -> UserSettingsRow:
        row = session.get(UserSettingsRow, user_id)
        if row is None:
            now = _to_db(self._clock())
            row = UserSettingsRow(
                user_id=user_id,
                application_mode="MANUAL",
                account_status="active",
                created_at=now,
                updated_at=now,
            )
            session.add(row)
        return row

    def _update(self, operation: str, user_id: str, **changes) -> StoredSettings:
        """Apply ``changes`` to the settings row, creating it with defaults first."""
        def _apply(session: Session) -> StoredSettings:
            row = self._get_or_create(session, user_id)
            for key, value in changes.items():
                setattr(row, key, value)
            row.updated_at = _to_db(self._clock())
            session.flush()
            return _to_stored(row)

        try:
            return self._run(operation, _apply)
        except PersistenceAppError as exc:
            # A concurrent request created the row first; apply onto theirs
            if isinstance(exc.__cause__, IntegrityError):
                return self._run(operation, _apply)
            raise

    def save_settings(self, stored: StoredSettings) -> StoredSettings:
        return self._update(
            "save_settings",
            stored.user_id,
            application_mode=stored.application_mode,
            account_status=stored.account_status,
            max_sends_per_day=stored.max_sends_per_day,
            max_sends_per_hour=stored.max_sends_per_hour,
            send_delay_seconds=stored.send_delay_seconds,
            bounce_pause_hours=stored.bounce_pause_hours,
            sending_paused_until=_to_db(stored.sending_paused_until),
        )

    def upsert_account_status(self, user_id: str, status: str) -> StoredSettings:
        return self._update("upsert_account_status", user_id, account_status=status)

    def set_sending_paused_until(self, user_id: str, until: datetime | None) -> StoredSettings:
        return self._update("set_sending_paused_until", user_id, sending_paused_until=_to_db(until))

    # --- sends ---

    def add_send(self, user_id: str, sent_at: datetime, *, recipient: str | None = None) -> SendRecord:
        def _add(session: Session) -> SendRecord:
            row = SendRecordRow(user_id=user_id, sent_at=_to_db(sent_at), recipient=recipient)
            session.add(row)
            session.flush()
            return SendRecord(id=row.id, user_id=user_id, sent_at=_from_db(row.sent_at), recipient=recipient)

        return self._run("add_send", _add)

    def _sends_between(self, session: Session, user_id: str, since: datetime, until: datetime):
        return session.query(SendRecordRow).filter(
            SendRecordRow.user_id == user_id,
            SendRecordRow.sent_at >= _to_db(since),
            SendRecordRow.sent_at < _to_db(until),
        )

    def count_sends(self, user_id: str, since: datetime, until: datetime) -> int:
        return self._run(
            "count_sends",
            lambda session: self._sends_between(session, user_id, since, until).count(),
        )

    def first_send_at(self, user_id: str, since: datetime, until: datetime) -> datetime | None:
        def _first(session: Session) -> datetime | None:
            value = (
                self._sends_between(session, user_id, since, until)
                .with_entities(func.min(SendRecordRow.sent_at))
                .scalar()
            )
            return _from_db(value)

        return self._run("first_send_at", _first)

    def last_send_at(self, user_id: str, until: datetime) -> datetime | None:
        def _last(session: Session) -> datetime | None:
            value = (
                session.query(func.max(SendRecordRow.sent_at))
                .filter(SendRecordRow.user_id == user_id, SendRecordRow.sent_at < _to_db(until))
                .scalar()
            )
            return _from_db(value)

        return self._run("last_send_at", _last)

    # --- bounces ---

    def add_bounce(self, user_id: str, occurred_at: datetime) -> BounceRecord:
        def _add(session: Session) -> BounceRecord:
            row = BounceRecordRow(user_id=user_id, occurred_at=_to_db(occurred_at))
            session.add(row)
            session.flush()
            return BounceRecord(id=row.id, user_id=user_id, occurred_at=_from_db(row.occurred_at))

        return self._run("add_bounce", _add)

    def count_bounces(self, user_id: str, since: datetime, until: datetime) -> int:
        def _count(session: Session) -> int:
            return (
                session.query(BounceRecordRow)
                .filter(
                    BounceRecordRow.user_id == user_id,
                    BounceRecordRow.occurred_at >= _to_db(since),
                    BounceRecordRow.occurred_at < _to_db(until),
                )
                .count()
            )

        return self._run("count_bounces", _count)

    def prune(self, before: datetime) -> int:
        cutoff = _to_db(before)

        def _prune(session: Session) -> int:
            sends = (
                session.query(SendRecordRow)
                .filter(SendRecordRow.sent_at < cutoff)
                .delete(synchronize_session=False)
            )
            bounces = (
                session.query(BounceRecordRow)
                .filter(BounceRecordRow.occurred_at < cutoff)
                .delete(synchronize_session=False)
            )
            return sends + bounces

        return self._run("prune", _prune)
