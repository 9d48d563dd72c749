"""SQLAlchemy engine and session factory.

The engine is created lazily on first use and reused for the lifetime of
the process.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

Base = declarative_base()


def build_engine(database_url: str | None = None, *, echo: bool | None = None) -> Engine:
    url = database_url or settings.store.database_url
    return create_engine(
        url,
        echo=settings.store.echo if echo is None else echo,
        # SQLite connections are shared across the threadpool FastAPI runs sync routes in
        connect_args={"check_same_thread": False} if url.startswith("sqlite") else {},
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create tables that don't exist yet."""
    # Models must be imported so their tables are registered on Base.metadata
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Transactional scope: commit on success, rollback on any error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
