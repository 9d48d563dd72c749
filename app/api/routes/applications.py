from __future__ import annotations

from fastapi import APIRouter, Body, Depends, status

from app.core.auth import get_auth_user_id
from app.core.dependencies import get_send_limiter
from app.core.rate_limit import enforce_rate_limit
from app.schemas.send_stats import (
    BounceRecordResponse,
    RecordSendRequest,
    SendDecisionResponse,
    SendRecordResponse,
    SendStatsResponse,
)
from app.services.send_limiter import SendLimiter

router = APIRouter(prefix="/api/applications", tags=["Applications"])


@router.get(
    "/send-stats",
    response_model=SendStatsResponse,
    dependencies=[Depends(enforce_rate_limit("send-stats"))],
)
def get_send_stats(
    user_id: str = Depends(get_auth_user_id),
    limiter: SendLimiter = Depends(get_send_limiter),
) -> SendStatsResponse:
    """Quota snapshot for the caller's current accounting window.

    Raises:
        AuthenticationAppError: 401 when the caller is not authenticated.
        PersistenceAppError: 500 when the store is unavailable.
    """
    return SendStatsResponse.model_validate(limiter.get_send_stats(user_id))


@router.get(
    "/can-send",
    response_model=SendDecisionResponse,
    dependencies=[Depends(enforce_rate_limit("send-stats"))],
)
def can_send(
    user_id: str = Depends(get_auth_user_id),
    limiter: SendLimiter = Depends(get_send_limiter),
) -> SendDecisionResponse:
    """Full pre-send check, including hourly quota, send delay and bounce protection."""
    return SendDecisionResponse.model_validate(limiter.can_send_now(user_id))


@router.post(
    "/send-records",
    response_model=SendRecordResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit("send-email"))],
)
def record_send(
    payload: RecordSendRequest | None = Body(None),
    user_id: str = Depends(get_auth_user_id),
    limiter: SendLimiter = Depends(get_send_limiter),
) -> SendRecordResponse:
    """Called by the sending workflow after a successful outbound send."""
    recipient = payload.recipient if payload else None
    return SendRecordResponse.model_validate(limiter.record_send(user_id, recipient=recipient))


@router.post(
    "/bounces",
    response_model=BounceRecordResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_bounce(
    user_id: str = Depends(get_auth_user_id),
    limiter: SendLimiter = Depends(get_send_limiter),
) -> BounceRecordResponse:
    return BounceRecordResponse.model_validate(limiter.record_bounce(user_id))
