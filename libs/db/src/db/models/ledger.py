from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: ledger_documents
# ---------------------------


class LedgerDocument(Base):
    """One document of the club ledger, addressed by ``(collection, key)``.

    The ledger is modelled as a document store: each collection
    (``players``, ``playerFinances``, ``income``, ``expenses``, ``sponsors``)
    holds JSON documents whose shape is owned by the application layer. The
    import pipeline only needs keyed get/set, inserts with generated keys and
    equality filters on top-level fields, so no per-collection tables exist.
    """

    __tablename__ = "ledger_documents"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    collection: Mapped[str] = mapped_column(String, nullable=False)
    key: Mapped[str] = mapped_column(String, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("collection", "key", name="uq_ledger_documents_collection_key"),
        Index("ix_ledger_documents_collection", "collection"),
    )


__all__ = [
    "Base",
    "LedgerDocument",
]
