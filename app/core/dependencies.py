"""Process-wide collaborators and the FastAPI dependencies that hand them out.

The store (and its database engine) is built once per process and reused.
Tests swap it with ``app.dependency_overrides[get_store]``.
"""

from __future__ import annotations

import logging

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError

from app.adapters.store.base import AbstractSendStore
from app.adapters.store.in_memory import InMemorySendStore
from app.adapters.store.sqlalchemy_store import SqlAlchemySendStore
from app.core.config import settings
from app.core.database import build_engine, build_session_factory, init_db
from app.services.send_limiter import SendLimiter
from app.services.status_gate import StatusGate

logger = logging.getLogger(__name__)

_store: AbstractSendStore | None = None
_store_config: tuple[str, str] | None = None


def build_store() -> AbstractSendStore:
    if settings.store.backend == "memory":
        return InMemorySendStore()

    engine = build_engine(settings.store.database_url)
    try:
        init_db(engine)
    except SQLAlchemyError as exc:
        # Store calls will surface PersistenceAppError until the database is reachable
        logger.error("store.schema_init_failed", extra={"error_type": type(exc).__name__})
    return SqlAlchemySendStore(build_session_factory(engine))


def get_store() -> AbstractSendStore:
    """Return the process-wide store, rebuilding it if store config changed."""
    global _store, _store_config

    config = (settings.store.backend, settings.store.database_url)
    if _store is None or _store_config != config:
        _store = build_store()
        _store_config = config
        logger.info("store.initialized", extra={"backend": settings.store.backend})
    return _store


def get_send_limiter(store: AbstractSendStore = Depends(get_store)) -> SendLimiter:
    return SendLimiter(store, settings.send)


def get_status_gate(store: AbstractSendStore = Depends(get_store)) -> StatusGate:
    return StatusGate(store, settings.send)
