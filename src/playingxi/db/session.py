"""
Engine and sessions for PlayingXI.

The engine is built lazily from ``settings.database_url``, so importing
this module (or anything that imports it) never touches the database.
Jobs open one session per unit of work; API requests get one per request.

Usage:
    # Jobs and scripts: one transaction per block
    from playingxi.db import get_session

    with get_session() as session:
        store = LineupStore(session)
        store.save_lineup(...)
    # committed here, or rolled back if the block raised

    # API endpoints
    @app.get("/api/leagues/{league_id}/leaderboard")
    def board(league_id: int, db: Session = Depends(get_db)):
        ...
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from playingxi.config import settings


def get_engine() -> Engine:
    """
    Build an engine for the configured database.

    Connections are pre-pinged so a dropped PostgreSQL connection is
    replaced rather than failing a job. SQL is echoed at DEBUG log level.
    Pool sizing applies to server databases only.
    """
    kwargs = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.database_url.startswith("sqlite"):
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow

    return create_engine(settings.database_url, **kwargs)


# Created on first use so importing this module never opens a connection
_engine = None


def _get_engine() -> Engine:
    """Shared engine, created and bound to SessionLocal on first call."""
    global _engine
    if _engine is None:
        _engine = get_engine()
        SessionLocal.configure(bind=_engine)
    return _engine


# Session factory, bound to the engine on first use
SessionLocal = sessionmaker(
    autocommit=False,
    # Lineup and scoring code flushes explicitly before reading its own writes
    autoflush=False,
)


def _new_session() -> Session:
    _get_engine()
    return SessionLocal()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    One transaction: commit when the block exits cleanly, roll back and
    re-raise when it does not. Used by jobs, scripts and worker threads.
    """
    session = _new_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session for ``Depends(get_db)``.

    Nothing is committed here; endpoints that write call ``db.commit()``
    once the store call has succeeded.
    """
    db = _new_session()
    try:
        yield db
    finally:
        db.close()
