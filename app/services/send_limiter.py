"""Per-user outbound send accounting.

The limiter counts append-only send records inside an accounting window
and combines the count with the user's account status:

    remaining = max(0, limit - used)
    allowed   = account_status == "active" and remaining > 0

The window is half-open, ``[window_start, now)``. ``can_send_now`` layers
the stricter pre-send checks (timed pause, hourly quota, minimum delay,
bounce protection) on top of these stats without changing ``allowed``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo

from app.adapters.store.base import AbstractSendStore, BounceRecord, SendRecord
from app.core.config import SendLimitSettings, settings
from app.services.status_gate import ResolvedSettings, require_user_id, resolve_settings

logger = logging.getLogger(__name__)

HOUR = timedelta(hours=1)
CALENDAR_EPOCH = datetime(1970, 1, 1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Window:
    start: datetime
    reset_at: datetime


@dataclass(frozen=True)
class SendStats:
    """Derived quota snapshot for one user. Never persisted."""

    used: int
    limit: int
    remaining: int
    window_start: datetime
    window_reset_at: datetime
    allowed: bool
    account_status: str
    application_mode: str
    hour_used: int
    hour_limit: int
    next_send_in_seconds: int
    is_paused: bool
    paused_until: datetime | None


@dataclass(frozen=True)
class SendDecision:
    allowed: bool
    reason: str | None
    code: str | None
    wait_seconds: int | None
    stats: SendStats


def calendar_window(now: datetime, *, window_seconds: int, tz: ZoneInfo) -> Window:
    """Fixed window aligned to local midnight in ``tz``.

    Windows of a day or shorter are slots of the local day, so the default
    86400 seconds is "today" in the user's timezone. Longer windows are
    counted from local midnight of 1970-01-01, so a 7-day window always
    starts on the same weekday.

    Args:
        now: Current instant (timezone-aware).
        window_seconds: Window length in seconds.
        tz: Timezone whose midnight anchors the windows.

    Returns:
        Window: Start and reset instants, both in UTC.
    """
    local_now = now.astimezone(tz).replace(tzinfo=None)
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    length = timedelta(seconds=window_seconds)
    anchor = midnight if window_seconds <= 86400 else CALENDAR_EPOCH
    start = anchor + length * ((local_now - anchor) // length)
    reset_at = start + length
    if window_seconds < 86400:
        # last slot of the day ends at the next midnight
        reset_at = min(reset_at, midnight + timedelta(days=1))
    return Window(
        start=start.replace(tzinfo=tz).astimezone(timezone.utc),
        reset_at=reset_at.replace(tzinfo=tz).astimezone(timezone.utc),
    )


class SendLimiter:
    """Computes send stats and records sends for a user."""

    def __init__(
        self,
        store: AbstractSendStore,
        limits: SendLimitSettings | None = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._limits = limits or settings.send
        self._clock = clock
        self._tz = ZoneInfo(self._limits.window_timezone)

    def _window(self, user_id: str, now: datetime) -> Window:
        length = timedelta(seconds=self._limits.window_seconds)
        if self._limits.window_mode == "rolling":
            start = now - length
            oldest = self._store.first_send_at(user_id, start, now)
            return Window(start=start, reset_at=(oldest or now) + length)
        return calendar_window(now, window_seconds=self._limits.window_seconds, tz=self._tz)

    def _stats(self, resolved: ResolvedSettings, now: datetime) -> SendStats:
        user_id = resolved.user_id
        window = self._window(user_id, now)

        used = self._store.count_sends(user_id, window.start, now)
        hour_used = self._store.count_sends(user_id, now - HOUR, now)
        remaining = max(0, resolved.max_sends_per_day - used)

        next_send_in = 0
        last_sent = self._store.last_send_at(user_id, now)
        if last_sent is not None:
            elapsed = math.floor((now - last_sent).total_seconds())
            next_send_in = max(0, resolved.send_delay_seconds - elapsed)

        paused_until = resolved.sending_paused_until
        return SendStats(
            used=used,
            limit=resolved.max_sends_per_day,
            remaining=remaining,
            window_start=window.start,
            window_reset_at=window.reset_at,
            allowed=resolved.is_active and remaining > 0,
            account_status=resolved.account_status,
            application_mode=resolved.application_mode,
            hour_used=hour_used,
            hour_limit=resolved.max_sends_per_hour,
            next_send_in_seconds=next_send_in,
            is_paused=paused_until is not None and paused_until > now,
            paused_until=paused_until,
        )

    def _resolve(self, user_id: str) -> ResolvedSettings:
        return resolve_settings(user_id, self._store.get_settings(user_id), self._limits)

    def get_send_stats(self, user_id: str) -> SendStats:
        """Return the user's quota snapshot for the current window.

        A missing settings row is treated as defaults; nothing is written.
        """
        require_user_id(user_id)
        stats = self._stats(self._resolve(user_id), self._clock())
        logger.info(
            "send_limiter.stats_computed",
            extra={
                "user_id": user_id,
                "used": stats.used,
                "limit": stats.limit,
                "remaining": stats.remaining,
                "allowed": stats.allowed,
            },
        )
        return stats

    def record_send(self, user_id: str, *, recipient: str | None = None) -> SendRecord:
        """Append one send record stamped with the current time.

        Each call inserts its own row, so concurrent calls never lose sends.
        """
        require_user_id(user_id)
        record = self._store.add_send(user_id, self._clock(), recipient=recipient)
        logger.info("send_limiter.send_recorded", extra={"user_id": user_id, "record_id": record.id})
        return record

    def record_bounce(self, user_id: str) -> BounceRecord:
        require_user_id(user_id)
        record = self._store.add_bounce(user_id, self._clock())
        logger.info("send_limiter.bounce_recorded", extra={"user_id": user_id, "record_id": record.id})
        return record

    def can_send_now(self, user_id: str) -> SendDecision:
        """Run every pre-send check in order; the first failing check wins.

        Checks: timed pause, account status, window quota, hourly quota,
        minimum delay since the last send, bounce protection. Crossing the
        bounce threshold starts a timed pause of ``bounce_pause_hours``.
        """
        require_user_id(user_id)
        now = self._clock()
        resolved = self._resolve(user_id)
        stats = self._stats(resolved, now)

        def deny(code: str, reason: str, wait: int | None = None) -> SendDecision:
            logger.info(
                "send_limiter.send_denied",
                extra={"user_id": user_id, "reason_code": code, "wait_seconds": wait},
            )
            return SendDecision(allowed=False, reason=reason, code=code, wait_seconds=wait, stats=stats)

        if stats.is_paused:
            wait = math.ceil((stats.paused_until - now).total_seconds())
            return deny(
                "sending_paused",
                f"Sending paused. Resumes in {math.ceil(wait / 60)} minutes.",
                wait,
            )

        if not resolved.is_active:
            return deny("account_paused", "Account is paused or disabled.")

        if stats.used >= stats.limit:
            return deny(
                "window_limit_reached",
                f"Send limit reached ({stats.used}/{stats.limit}). Resets at {stats.window_reset_at.isoformat()}.",
                math.ceil((stats.window_reset_at - now).total_seconds()),
            )

        if stats.hour_used >= stats.hour_limit:
            return deny(
                "hourly_limit_reached",
                f"Hourly limit reached ({stats.hour_used}/{stats.hour_limit}). Wait a bit.",
            )

        if stats.next_send_in_seconds > 0:
            return deny(
                "send_delay",
                f"Wait {stats.next_send_in_seconds}s before next send.",
                stats.next_send_in_seconds,
            )

        bounces = self._store.count_bounces(user_id, stats.window_start, now)
        if bounces >= self._limits.bounce_threshold:
            pause_until = now + timedelta(hours=resolved.bounce_pause_hours)
            self._store.set_sending_paused_until(user_id, pause_until)
            logger.warning(
                "send_limiter.bounce_pause_started",
                extra={"user_id": user_id, "bounces": bounces, "paused_until": pause_until.isoformat()},
            )
            return deny(
                "bounce_pause",
                f"{bounces} bounces in the current window. Sending paused for "
                f"{resolved.bounce_pause_hours}h to protect your email reputation.",
                resolved.bounce_pause_hours * 3600,
            )

        return SendDecision(allowed=True, reason=None, code=None, wait_seconds=None, stats=stats)

    def prune_expired(self, *, retention_seconds: int | None = None) -> int:
        """Delete send and bounce records that can no longer affect any window."""
        retention = retention_seconds or self._limits.retention_days * 86400
        # Never prune inside the window currently being accounted
        retention = max(retention, self._limits.window_seconds, int(HOUR.total_seconds()))
        cutoff = self._clock() - timedelta(seconds=retention)
        deleted = self._store.prune(cutoff)
        logger.info("send_limiter.records_pruned", extra={"deleted": deleted, "cutoff": cutoff.isoformat()})
        return deleted
