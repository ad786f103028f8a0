"""Centralized SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import get_engine, session_scope

with session_scope(database_url=url) as s:
    s.execute(...)

Engines are cached per effective URL so repeated callers share one pool. A
password may be supplied separately from the URL (the import CLI reads it from
the environment or an interactive prompt) and is applied with
``URL.set(password=...)`` rather than string concatenation.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

_ENGINES: dict[str, Engine] = {}
_SESSION_MAKERS: dict[str, sessionmaker[Session]] = {}


def _database_url(override: str | None = None, *, password: str | None = None) -> URL:
    raw = override or os.getenv("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    url = make_url(raw)
    if password:
        url = url.set(password=password)
    return url


def get_engine(*, database_url: str | None = None, password: str | None = None) -> Engine:
    """Return a shared SQLAlchemy engine for the URL, creating it on first use."""

    url = _database_url(database_url, password=password)
    cache_key = url.render_as_string(hide_password=False)
    engine = _ENGINES.get(cache_key)
    if engine is None:
        # Default isolation level is fine; echo disabled.
        engine = create_engine(url, pool_pre_ping=True)
        _ENGINES[cache_key] = engine
        _SESSION_MAKERS[cache_key] = sessionmaker(
            bind=engine, expire_on_commit=False, class_=Session
        )
    return engine


def get_session(*, database_url: str | None = None, password: str | None = None) -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    engine = get_engine(database_url=database_url, password=password)
    cache_key = engine.url.render_as_string(hide_password=False)
    return _SESSION_MAKERS[cache_key]()


@contextmanager
def session_scope(
    *, database_url: str | None = None, password: str | None = None
) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url, password=password)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_connection(*, database_url: str | None = None, password: str | None = None) -> None:
    """Open a connection and run ``SELECT 1``; errors propagate to the caller."""

    engine = get_engine(database_url=database_url, password=password)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def dispose_engines() -> None:
    """Dispose every cached engine (used by tests between temporary databases)."""

    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
    _SESSION_MAKERS.clear()


__all__ = [
    "check_connection",
    "dispose_engines",
    "get_engine",
    "get_session",
    "session_scope",
]
