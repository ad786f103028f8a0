"""DB helpers for tests: bootstrap a temporary SQLite ledger database."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from db import Base
from db.client import get_engine, session_scope
from db.models.ledger import LedgerDocument
from sqlalchemy import select
from sqlalchemy import text as sql_text


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default); the ledger
    store opens one short session per call.
    """

    url = f"sqlite+pysqlite:///{db_file}"
    # Ensure parent exists before engine creation attempts any writes
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)
    Base.metadata.create_all(bind=engine)
    _assert_ledger_schema_in_sync(url)

    # Make it the default for any code paths that read from the environment
    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def documents(database_url: str, collection: str) -> dict[str, dict[str, Any]]:
    """Return ``{key: data}`` for every stored document of ``collection``."""

    with session_scope(database_url=database_url) as session:
        rows = session.execute(
            select(LedgerDocument)
            .where(LedgerDocument.collection == collection)
            .order_by(LedgerDocument.id)
        ).scalars()
        return {row.key: dict(row.data) for row in rows}


def count_documents(database_url: str) -> int:
    with session_scope(database_url=database_url) as session:
        return int(session.execute(sql_text("SELECT COUNT(*) FROM ledger_documents")).scalar_one())


def _assert_ledger_schema_in_sync(database_url: str) -> None:
    """Quick sanity check: ORM column set matches the SQLite table column set."""

    expected = {c.name for c in LedgerDocument.__table__.columns}
    with session_scope(database_url=database_url) as session:
        rows = session.execute(sql_text("PRAGMA table_info('ledger_documents')")).fetchall()
        got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
    missing = expected - got
    extra = got - expected
    assert not missing and not extra, (
        f"ledger_documents schema drift: missing={missing or 'none'}, extra={extra or 'none'}"
    )
