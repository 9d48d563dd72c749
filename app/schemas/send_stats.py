"""Pydantic schemas for send accounting responses.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SendStatsResponse(CamelModel):
    """Quota snapshot for the current accounting window."""

    used: int = Field(..., description="Sends counted in [windowStart, now).")
    limit: int = Field(..., description="Sends permitted per window.")
    remaining: int = Field(..., description="max(0, limit - used).")
    window_start: datetime
    window_reset_at: datetime = Field(..., description="When the current window ends.")
    allowed: bool = Field(..., description="accountStatus is active and remaining > 0.")
    account_status: str
    application_mode: str
    hour_used: int
    hour_limit: int
    next_send_in_seconds: int = Field(..., description="Seconds until the minimum send delay has passed.")
    is_paused: bool = Field(..., description="A timed pause (bounce protection) is in effect.")
    paused_until: datetime | None = None


class SendDecisionResponse(CamelModel):
    allowed: bool
    reason: str | None = None
    code: str | None = None
    wait_seconds: int | None = None
    stats: SendStatsResponse


class SendRecordResponse(CamelModel):
    id: int
    user_id: str
    sent_at: datetime


class RecordSendRequest(CamelModel):
    recipient: str | None = Field(None, description="Recipient address, kept for audit only.")


class BounceRecordResponse(CamelModel):
    id: int
    user_id: str
    occurred_at: datetime
