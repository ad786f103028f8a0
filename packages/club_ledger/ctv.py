"""Canonical Transaction View (CTV) for ledger imports.

Every export variant (expense list, deposit list, sales-detail statement) is
reduced to this one record before planning writes. Unlike the raw CSV cells,
values here are typed: ``date`` is a :class:`datetime.date` and ``amount`` a
signed :class:`~decimal.Decimal`.

Field order:
    - row_number: 1-based line of the source row in the input file (the
      header is line 1), used for error attribution
    - date: date | None
    - category_raw / category_canonical: free text and mapped enumeration value
    - amount: Decimal (signed, never zero; zero rows are dropped upstream)
    - counterparty_name: vendor, payer or customer display name
    - payment_method_raw / payment_method_canonical
    - reference_number: check/invoice/reference number when present
    - description: memo text
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class CanonicalTransaction:
    """A single canonicalized transaction row."""

    row_number: int
    date: date | None
    category_raw: str
    category_canonical: str
    amount: Decimal
    counterparty_name: str
    payment_method_raw: str
    payment_method_canonical: str
    reference_number: str | None
    description: str


__all__ = ["CanonicalTransaction"]
