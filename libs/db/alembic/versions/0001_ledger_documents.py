# ruff: noqa: I001
"""Ledger document table for the club ledger import pipeline.

Revision ID: 0001_ledger_documents
Revises: None
Create Date: 2026-03-02
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_ledger_documents"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "ledger_documents",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("collection", sa.Text(), nullable=False),
        sa.Column("key", sa.Text(), nullable=False),
        sa.Column(
            "data",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("collection", "key", name="uq_ledger_documents_collection_key"),
    )

    # Collection scans back the equality-filter queries used for entity lookup
    op.create_index(
        "ix_ledger_documents_collection",
        "ledger_documents",
        ["collection"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_ledger_documents_collection", table_name="ledger_documents")
    op.drop_table("ledger_documents")
