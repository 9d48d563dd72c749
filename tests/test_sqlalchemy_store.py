"""Integration tests for the SQLAlchemy store against a SQLite file."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from app.adapters.store.base import StoredSettings
from app.adapters.store.sqlalchemy_store import SqlAlchemySendStore
from app.core import dependencies
from app.core.config import settings
from app.core.database import build_engine, build_session_factory, init_db
from app.core.errors import PersistenceAppError
from app.services.send_limiter import SendLimiter
from app.services.status_gate import StatusGate

NOW = datetime(2026, 10, 18, 15, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sql_store(tmp_path) -> SqlAlchemySendStore:
    engine = build_engine(f"sqlite:///{tmp_path / 'send_quota.db'}", echo=False)
    init_db(engine)
    yield SqlAlchemySendStore(build_session_factory(engine), clock=lambda: NOW)
    engine.dispose()


def test_settings_missing_then_created_on_status_write(sql_store) -> None:
    assert sql_store.get_settings("alice") is None

    stored = sql_store.upsert_account_status("alice", "paused")

    assert stored.account_status == "paused"
    assert stored.application_mode == "MANUAL"
    assert sql_store.get_settings("alice") == stored


def test_save_settings_round_trips_timezone_aware_pause(sql_store) -> None:
    until = datetime(2026, 10, 19, 9, 30, tzinfo=timezone(timedelta(hours=5)))

    sql_store.save_settings(
        StoredSettings(user_id="alice", application_mode="AUTO", max_sends_per_day=4, sending_paused_until=until)
    )

    stored = sql_store.get_settings("alice")
    assert stored.application_mode == "AUTO"
    assert stored.max_sends_per_day == 4
    assert stored.sending_paused_until == until
    assert stored.sending_paused_until.tzinfo == timezone.utc


def test_send_queries_use_half_open_intervals(sql_store) -> None:
    start = NOW - timedelta(hours=2)
    sql_store.add_send("alice", start - timedelta(milliseconds=1))
    sql_store.add_send("alice", start)
    sql_store.add_send("alice", NOW - timedelta(minutes=1))
    sql_store.add_send("alice", NOW)
    sql_store.add_send("bob", NOW - timedelta(minutes=1))

    assert sql_store.count_sends("alice", start, NOW) == 2
    assert sql_store.first_send_at("alice", start, NOW) == start
    assert sql_store.last_send_at("alice", NOW) == NOW - timedelta(minutes=1)
    assert sql_store.first_send_at("carol", start, NOW) is None


def test_bounces_and_prune(sql_store) -> None:
    sql_store.add_bounce("alice", NOW - timedelta(days=40))
    sql_store.add_bounce("alice", NOW - timedelta(minutes=5))
    sql_store.add_send("alice", NOW - timedelta(days=35))

    assert sql_store.count_bounces("alice", NOW - timedelta(days=1), NOW) == 1
    assert sql_store.prune(NOW - timedelta(days=30)) == 2
    assert sql_store.count_bounces("alice", NOW - timedelta(days=365), NOW) == 1


def test_services_work_end_to_end_on_sql_store(sql_store, limits) -> None:
    limiter = SendLimiter(sql_store, limits, clock=lambda: NOW)
    for minutes in (1, 2, 3):
        sql_store.add_send("alice", NOW - timedelta(minutes=minutes))

    stats = limiter.get_send_stats("alice")
    assert (stats.used, stats.limit, stats.remaining, stats.allowed) == (3, 10, 7, True)

    StatusGate(sql_store, limits).pause("alice")
    assert limiter.get_send_stats("alice").allowed is False


def test_database_errors_become_persistence_errors() -> None:
    session = Mock()
    session.get.side_effect = OperationalError("SELECT 1", {}, Exception("database is locked"))
    store = SqlAlchemySendStore(Mock(return_value=session))

    with pytest.raises(PersistenceAppError) as exc_info:
        store.get_settings("alice")

    assert exc_info.value.code == "persistence_failure"
    assert exc_info.value.details == {"operation": "get_settings"}
    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_store_is_built_even_when_schema_init_fails(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(settings.store, "backend", "sqlalchemy")
    monkeypatch.setattr(settings.store, "database_url", f"sqlite:///{tmp_path / 'down.db'}")
    monkeypatch.setattr(
        dependencies,
        "init_db",
        Mock(side_effect=OperationalError("CREATE TABLE", {}, Exception("unable to open database"))),
    )

    store = dependencies.build_store()

    assert isinstance(store, SqlAlchemySendStore)
    with pytest.raises(PersistenceAppError):
        store.get_settings("alice")
