"""Unit tests for the send limiter service."""

import threading
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.adapters.store.base import StoredSettings
from app.core.errors import ValidationAppError
from app.services.send_limiter import SendLimiter, calendar_window
from app.services.status_gate import StatusGate

WINDOW_START = datetime(2026, 10, 18, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def limiter(store, limits, clock) -> SendLimiter:
    return SendLimiter(store, limits, clock=clock)


class TestGetSendStats:
    def test_scenario_three_of_ten_used(self, limiter, store, clock) -> None:
        for minutes in (10, 20, 30):
            store.add_send("alice", clock.now - timedelta(minutes=minutes))

        stats = limiter.get_send_stats("alice")

        assert stats.used == 3
        assert stats.limit == 10
        assert stats.remaining == 7
        assert stats.allowed is True
        assert stats.window_start == WINDOW_START
        assert stats.window_reset_at == WINDOW_START + timedelta(days=1)

    def test_missing_settings_row_uses_defaults_without_writing(self, limiter, store) -> None:
        stats = limiter.get_send_stats("nobody")

        assert stats.application_mode == "MANUAL"
        assert stats.account_status == "active"
        assert stats.allowed is True
        assert store.get_settings("nobody") is None

    def test_paused_account_is_never_allowed(self, limiter, store) -> None:
        store.upsert_account_status("alice", "paused")

        stats = limiter.get_send_stats("alice")

        assert stats.remaining == 10
        assert stats.allowed is False

    def test_remaining_is_never_negative(self, limiter, store, clock) -> None:
        store.save_settings(StoredSettings(user_id="alice", max_sends_per_day=2))
        for seconds in range(1, 6):
            store.add_send("alice", clock.now - timedelta(seconds=seconds))

        stats = limiter.get_send_stats("alice")

        assert stats.used == 5
        assert stats.limit == 2
        assert stats.remaining == 0
        assert stats.allowed is False

    def test_record_at_window_start_counts(self, limiter, store) -> None:
        store.add_send("alice", WINDOW_START)

        assert limiter.get_send_stats("alice").used == 1

    def test_record_just_before_window_start_does_not_count(self, limiter, store) -> None:
        store.add_send("alice", WINDOW_START - timedelta(milliseconds=1))

        assert limiter.get_send_stats("alice").used == 0

    def test_per_user_override_beats_configured_default(self, limiter, store) -> None:
        store.save_settings(StoredSettings(user_id="alice", max_sends_per_day=50))

        assert limiter.get_send_stats("alice").limit == 50

    def test_other_users_records_are_ignored(self, limiter, store, clock) -> None:
        store.add_send("bob", clock.now - timedelta(minutes=1))

        assert limiter.get_send_stats("alice").used == 0

    def test_pause_is_visible_immediately(self, limiter, store) -> None:
        gate = StatusGate(store)

        gate.set_account_status("alice", "paused")

        assert limiter.get_send_stats("alice").allowed is False

    def test_hourly_counts_and_next_send_delay(self, store, limits, clock) -> None:
        limiter = SendLimiter(store, limits.model_copy(update={"delay_seconds": 120}), clock=clock)
        store.add_send("alice", clock.now - timedelta(minutes=90))
        store.add_send("alice", clock.now - timedelta(seconds=30))

        stats = limiter.get_send_stats("alice")

        assert stats.used == 2
        assert stats.hour_used == 1
        assert stats.hour_limit == 8
        assert stats.next_send_in_seconds == 90

    def test_timed_pause_is_reported_but_does_not_change_allowed(self, limiter, store, clock) -> None:
        store.set_sending_paused_until("alice", clock.now + timedelta(hours=2))

        stats = limiter.get_send_stats("alice")

        assert stats.is_paused is True
        assert stats.paused_until == clock.now + timedelta(hours=2)
        assert stats.allowed is True

    @pytest.mark.parametrize("user_id", ["", "   "])
    def test_rejects_empty_user_id(self, limiter, user_id) -> None:
        with pytest.raises(ValidationAppError):
            limiter.get_send_stats(user_id)


class TestRollingWindow:
    def test_counts_trailing_window_and_resets_when_oldest_expires(self, store, limits, clock) -> None:
        limiter = SendLimiter(store, limits.model_copy(update={"window_mode": "rolling"}), clock=clock)
        oldest = clock.now - timedelta(hours=20)
        store.add_send("alice", oldest)
        store.add_send("alice", clock.now - timedelta(hours=1))
        store.add_send("alice", clock.now - timedelta(hours=25))

        stats = limiter.get_send_stats("alice")

        assert stats.used == 2
        assert stats.window_start == clock.now - timedelta(days=1)
        assert stats.window_reset_at == oldest + timedelta(days=1)

    def test_empty_window_resets_one_window_from_now(self, store, limits, clock) -> None:
        limiter = SendLimiter(store, limits.model_copy(update={"window_mode": "rolling"}), clock=clock)

        stats = limiter.get_send_stats("alice")

        assert stats.window_reset_at == clock.now + timedelta(days=1)


class TestCalendarWindow:
    def test_aligns_to_local_midnight(self) -> None:
        now = datetime(2026, 10, 18, 2, 30, tzinfo=timezone.utc)

        window = calendar_window(now, window_seconds=86400, tz=ZoneInfo("Asia/Karachi"))

        # 07:30 local on the 18th in UTC+5
        assert window.start == datetime(2026, 10, 17, 19, 0, tzinfo=timezone.utc)
        assert window.reset_at == datetime(2026, 10, 18, 19, 0, tzinfo=timezone.utc)

    def test_sub_day_windows_are_slots_of_the_day(self) -> None:
        now = datetime(2026, 10, 18, 13, 45, tzinfo=timezone.utc)

        window = calendar_window(now, window_seconds=6 * 3600, tz=ZoneInfo("UTC"))

        assert window.start == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
        assert window.reset_at == datetime(2026, 10, 18, 18, 0, tzinfo=timezone.utc)

    def test_multi_day_windows_keep_a_fixed_start(self) -> None:
        window = calendar_window(
            datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc), window_seconds=7 * 86400, tz=ZoneInfo("UTC")
        )

        # weeks counted from 1970-01-01 (a Thursday)
        assert window.start == datetime(2026, 10, 15, 0, 0, tzinfo=timezone.utc)
        assert window.reset_at == datetime(2026, 10, 22, 0, 0, tzinfo=timezone.utc)

    def test_weekly_quota_counts_earlier_days(self, store, limits, clock) -> None:
        limiter = SendLimiter(store, limits.model_copy(update={"window_seconds": 7 * 86400}), clock=clock)
        store.add_send("alice", clock.now - timedelta(days=2))
        store.add_send("alice", datetime(2026, 10, 14, 23, 59, tzinfo=timezone.utc))

        stats = limiter.get_send_stats("alice")

        assert stats.used == 1
        assert stats.window_start == datetime(2026, 10, 15, 0, 0, tzinfo=timezone.utc)
        assert stats.window_reset_at == datetime(2026, 10, 22, 0, 0, tzinfo=timezone.utc)


class TestRecordSend:
    def test_appends_record_with_current_time(self, limiter, store, clock) -> None:
        record = limiter.record_send("alice", recipient="hr@example.com")

        assert record.user_id == "alice"
        assert record.sent_at == clock.now
        assert record.recipient == "hr@example.com"

    def test_concurrent_sends_are_not_lost(self, limiter, store, clock) -> None:
        def send_many() -> None:
            for _ in range(25):
                limiter.record_send("alice")

        threads = [threading.Thread(target=send_many) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        clock.advance(seconds=1)
        assert limiter.get_send_stats("alice").used == 200


class TestPruneExpired:
    def test_deletes_only_records_past_retention(self, limiter, store, clock) -> None:
        store.add_send("alice", clock.now - timedelta(days=40))
        store.add_bounce("alice", clock.now - timedelta(days=31))
        store.add_send("alice", clock.now - timedelta(days=2))

        deleted = limiter.prune_expired()

        assert deleted == 2
        assert store.count_sends("alice", clock.now - timedelta(days=365), clock.now) == 1

    def test_never_prunes_inside_current_window(self, limiter, store, clock) -> None:
        store.add_send("alice", clock.now - timedelta(hours=12))

        assert limiter.prune_expired(retention_seconds=60) == 0
