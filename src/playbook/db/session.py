"""
Database session management for PlayBook.

Provides the SQLAlchemy engine and session factory, configured from
config.py. Both are created on first use, so importing this module never
opens a connection or loads a database driver.

Usage:
    # One unit of work on the configured database
    from playbook.db import get_session_factory, session_scope

    with session_scope(get_session_factory()) as session:
        teams = session.query(TeamRecord).all()
        # Commits automatically on exit, rolls back on exception
"""

from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from playbook.config import settings


def get_engine(database_url: str | None = None) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool for efficient reuse (server databases only)
    - Echo mode when LOG_LEVEL=DEBUG
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = database_url or settings.database_url
    options = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_engine(url, **options)


@lru_cache
def get_session_factory() -> sessionmaker:
    """Session factory bound to the configured database (created once)."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=get_engine(),
    )


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Run a unit of work in its own session.

    Commits on successful exit, rolls back on exception and re-raises.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
