"""Ledger store integration for ``club_ledger``.

The import pipeline depends on a small document-store contract,
:class:`LedgerStore`: keyed ``get``/``set``, ``add`` with a generated key, and
``query`` with equality filters on top-level fields. :class:`SqlLedgerStore`
implements it over the ``ledger_documents`` table owned by ``libs/db``, using
one short transaction per call so each row's writes are committed before the
next row is processed.

Also here: :func:`compute_fingerprint`, the stable source key for ledger lines
whose export carries no usable identifier.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import select

from db.client import check_connection, session_scope
from db.models.ledger import LedgerDocument

from .ctv import CanonicalTransaction
from .normalizers import fmt_amount

# Collection names shared with the web application
PLAYERS = "players"
PLAYER_FINANCES = "playerFinances"
INCOME = "income"
EXPENSES = "expenses"
SPONSORS = "sponsors"


class LedgerStore(Protocol):
    def get(self, collection: str, key: str) -> dict[str, Any] | None: ...

    def set(
        self,
        collection: str,
        key: str,
        record: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None: ...

    def add(self, collection: str, record: Mapping[str, Any]) -> str: ...

    def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> list[tuple[str, dict[str, Any]]]: ...


class SqlLedgerStore:
    """:class:`LedgerStore` backed by SQLAlchemy and ``ledger_documents``.

    Parameters
    ----------
    database_url:
        Optional override for ``DATABASE_URL``.
    password:
        Optional credential applied to the URL (never embedded in it by callers).
    """

    def __init__(self, *, database_url: str | None = None, password: str | None = None) -> None:
        self._database_url = database_url
        self._password = password

    def _scope(self):
        return session_scope(database_url=self._database_url, password=self._password)

    def ping(self) -> None:
        """Open a connection once; raises when the store is unreachable or rejects the credential."""

        check_connection(database_url=self._database_url, password=self._password)

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        with self._scope() as session:
            row = session.execute(
                select(LedgerDocument).where(
                    LedgerDocument.collection == collection, LedgerDocument.key == key
                )
            ).scalar_one_or_none()
            return dict(row.data) if row is not None else None

    def set(
        self,
        collection: str,
        key: str,
        record: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        """Write ``record`` under ``key``.

        ``merge=True`` performs a shallow merge: top-level fields in ``record``
        replace stored ones and all other stored fields are kept.
        """

        now = datetime.now(UTC)
        with self._scope() as session:
            row = session.execute(
                select(LedgerDocument).where(
                    LedgerDocument.collection == collection, LedgerDocument.key == key
                )
            ).scalar_one_or_none()
            if row is None:
                session.add(
                    LedgerDocument(
                        collection=collection,
                        key=key,
                        data=dict(record),
                        created_at=now,
                        updated_at=now,
                    )
                )
                return
            # Assign a new dict so the JSON column registers the change
            row.data = {**row.data, **record} if merge else dict(record)
            row.updated_at = now

    def add(self, collection: str, record: Mapping[str, Any]) -> str:
        key = uuid.uuid4().hex
        self.set(collection, key, record)
        return key

    def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(key, document)`` pairs in insertion order.

        Filters compare top-level fields for equality; they are applied after
        loading the collection since documents are schemaless JSON.
        """

        with self._scope() as session:
            rows = session.execute(
                select(LedgerDocument)
                .where(LedgerDocument.collection == collection)
                .order_by(LedgerDocument.id)
            ).scalars()
            out: list[tuple[str, dict[str, Any]]] = []
            for row in rows:
                doc = dict(row.data)
                if filters and any(doc.get(k) != v for k, v in filters.items()):
                    continue
                out.append((row.key, doc))
            return out


def compute_fingerprint(*, kind: str, tx: CanonicalTransaction) -> str:
    """Compute a stable SHA-256 fingerprint over canonical transaction fields.

    Fields used: kind (``expense``/``income``), date (YYYY-MM-DD), amount (2dp
    string), counterparty, raw category, reference and description (trimmed).
    The source row number is not part of the payload; reordering an export
    keeps every key.
    """

    payload = {
        "kind": kind.strip().lower(),
        "date": tx.date.isoformat() if tx.date else None,
        "amount": fmt_amount(tx.amount),
        "counterparty": tx.counterparty_name.strip() or None,
        "category": tx.category_raw.strip() or None,
        "reference": (tx.reference_number or "").strip() or None,
        "description": tx.description.strip() or None,
    }
    # Ensure deterministic JSON serialization
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


__all__ = [
    "EXPENSES",
    "INCOME",
    "LedgerStore",
    "PLAYERS",
    "PLAYER_FINANCES",
    "SPONSORS",
    "SqlLedgerStore",
    "compute_fingerprint",
]
