from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.adapters.store.base import AbstractSendStore
from app.core.config import settings
from app.core.dependencies import get_store
from app.core.errors import PersistenceAppError

router = APIRouter(tags=["Health"])

_PROBE_USER_ID = "__health__"


@router.get("/health")
def health_check() -> dict:
    """Liveness probe; does not touch the store."""
    return {"status": "ok"}


@router.get("/health/ready")
def readiness_check(store: AbstractSendStore = Depends(get_store)):
    """Readiness probe: 200 when the store answers a read, 503 otherwise."""
    try:
        store.get_settings(_PROBE_USER_ID)
    except PersistenceAppError:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "store": settings.store.backend},
        )
    return {"status": "ok", "store": settings.store.backend}
