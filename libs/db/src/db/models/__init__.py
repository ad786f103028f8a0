"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the ledger document model used by ``club_ledger``.
"""

from .ledger import Base, LedgerDocument

__all__ = [
    "Base",
    "LedgerDocument",
]
