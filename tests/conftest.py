"""Pytest configuration for test isolation.

The importers read their connection settings and configuration from the
environment (``DATABASE_URL``, ``LEDGER_DB_PASSWORD``, ``CLUB_LEDGER_CONFIG``)
and cache one SQLAlchemy engine per URL. To keep tests hermetic, an autouse
fixture clears those variables for every test and disposes cached engines
afterwards so temporary SQLite files are released.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from db.client import dispose_engines

from tests.helpers.db import bootstrap_sqlite_db

_ENV_VARS = ("DATABASE_URL", "LEDGER_DB_PASSWORD", "CLUB_LEDGER_CONFIG", "CLUB_LEDGER_LOG_LEVEL")


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    dispose_engines()


@pytest.fixture
def ledger_db(tmp_path: Path) -> str:
    """URL of a fresh file-backed SQLite ledger database."""

    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite")


@pytest.fixture
def fixed_clock():
    """A clock returning one fixed instant, for reproducible documents."""

    instant = datetime(2025, 9, 1, 12, 0, tzinfo=UTC)
    return lambda: instant
