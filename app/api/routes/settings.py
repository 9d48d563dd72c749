from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import get_auth_user_id
from app.core.dependencies import get_status_gate
from app.schemas.settings import AccountStatusResponse, AccountStatusUpdate, ModeResponse
from app.services.status_gate import StatusGate

router = APIRouter(prefix="/api/settings", tags=["Settings"])


@router.get("/mode", response_model=ModeResponse)
def get_mode(
    user_id: str = Depends(get_auth_user_id),
    gate: StatusGate = Depends(get_status_gate),
) -> ModeResponse:
    """Application mode and account status.

    Falls back to ``MANUAL``/``active`` when settings can't be read.
    """
    return ModeResponse(**gate.get_mode(user_id))


@router.patch("/status", response_model=AccountStatusResponse)
def update_status(
    payload: AccountStatusUpdate,
    user_id: str = Depends(get_auth_user_id),
    gate: StatusGate = Depends(get_status_gate),
) -> AccountStatusResponse:
    """Pause or resume sending for the caller.

    Raises:
        ValidationAppError: 400 when accountStatus is not 'active' or 'paused'.
        PersistenceAppError: 500 when the update can't be written.
    """
    return AccountStatusResponse(**gate.set_account_status(user_id, payload.account_status))
