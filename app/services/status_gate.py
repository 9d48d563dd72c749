"""Account status gate and settings resolution.

A user's ``account_status`` is either ``active`` or ``paused``; only
active accounts may send. The status is always read fresh from the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.adapters.store.base import AbstractSendStore, StoredSettings
from app.core.config import SendLimitSettings, settings
from app.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

ACTIVE = "active"
PAUSED = "paused"
ACCOUNT_STATUSES = (ACTIVE, PAUSED)

MANUAL = "MANUAL"
AUTO = "AUTO"
APPLICATION_MODES = (MANUAL, AUTO)


@dataclass(frozen=True)
class ResolvedSettings:
    """Effective settings for one user, with every default filled in."""

    user_id: str
    application_mode: str
    account_status: str
    max_sends_per_day: int
    max_sends_per_hour: int
    send_delay_seconds: int
    bounce_pause_hours: int
    sending_paused_until: datetime | None
    persisted: bool

    @property
    def is_active(self) -> bool:
        return self.account_status == ACTIVE


def resolve_settings(
    user_id: str,
    stored: StoredSettings | None,
    defaults: SendLimitSettings,
) -> ResolvedSettings:
    """Merge a stored row (or its absence) with configured defaults.

    Pure: never touches the store. A missing row yields ``MANUAL``/``active``
    and the configured quotas.
    """
    persisted = stored is not None
    stored = stored or StoredSettings(user_id=user_id)
    mode = stored.application_mode if stored.application_mode in APPLICATION_MODES else MANUAL

    def _pick(override: int | None, default: int) -> int:
        return default if override is None else override

    return ResolvedSettings(
        user_id=user_id,
        application_mode=mode,
        account_status=stored.account_status or ACTIVE,
        max_sends_per_day=_pick(stored.max_sends_per_day, defaults.max_per_day),
        max_sends_per_hour=_pick(stored.max_sends_per_hour, defaults.max_per_hour),
        send_delay_seconds=_pick(stored.send_delay_seconds, defaults.delay_seconds),
        bounce_pause_hours=_pick(stored.bounce_pause_hours, defaults.bounce_pause_hours),
        sending_paused_until=stored.sending_paused_until,
        persisted=persisted,
    )


def require_user_id(user_id: str) -> str:
    if not user_id or not user_id.strip():
        raise ValidationAppError(
            code="invalid_user_id",
            message="user_id must be a non-empty string",
        )
    return user_id


class StatusGate:
    """Reads and flips the per-user ``active``/``paused`` switch."""

    def __init__(self, store: AbstractSendStore, limits: SendLimitSettings | None = None) -> None:
        self._store = store
        self._limits = limits or settings.send

    def load(self, user_id: str) -> ResolvedSettings:
        require_user_id(user_id)
        return resolve_settings(user_id, self._store.get_settings(user_id), self._limits)

    def get_mode(self, user_id: str) -> dict[str, str]:
        """Return ``{"mode", "status"}`` for the user.

        Any failure while reading settings is logged and answered with the
        defaults (``MANUAL``, ``active``); callers never see an error.
        """
        require_user_id(user_id)
        try:
            stored = self._store.get_settings(user_id)
        except Exception as exc:
            logger.warning(
                "status_gate.mode_read_failed",
                extra={
                    "user_id": user_id,
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )
            return {"mode": MANUAL, "status": ACTIVE}
        resolved = resolve_settings(user_id, stored, self._limits)
        return {"mode": resolved.application_mode, "status": resolved.account_status}

    def set_account_status(self, user_id: str, new_status: Any) -> dict[str, object]:
        """Set the account status, creating the settings row if missing.

        Raises:
            ValidationAppError: ``new_status`` is not ``active`` or ``paused``.
            PersistenceAppError: The store failed to write.
        """
        require_user_id(user_id)
        if not isinstance(new_status, str) or new_status not in ACCOUNT_STATUSES:
            raise ValidationAppError(
                code="invalid_account_status",
                message="Invalid status",
                details={"allowed_values": list(ACCOUNT_STATUSES), "actual_value": str(new_status)},
            )

        stored = self._store.upsert_account_status(user_id, new_status)
        logger.info(
            "status_gate.status_changed",
            extra={"user_id": user_id, "account_status": stored.account_status},
        )
        return {"success": True, "accountStatus": stored.account_status}

    def pause(self, user_id: str) -> dict[str, object]:
        return self.set_account_status(user_id, PAUSED)

    def resume(self, user_id: str) -> dict[str, object]:
        return self.set_account_status(user_id, ACTIVE)
