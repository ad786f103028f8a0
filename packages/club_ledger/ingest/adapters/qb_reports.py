"""Adapters for QuickBooks report exports.

Reports differ from list exports: a title block (report name, company,
blank line) precedes the header, and a footer carries the basis line and a
generation timestamp. Three reports are read:

``<Company>_Customer Contact List.csv``
    Header starts with ``Customer full name``; columns include
    ``Phone numbers`` (several labelled numbers in one cell), ``Email``,
    ``Full name`` (contact person) and ``Full address``.
``<Company>_Customer Balance Summary.csv``
    Header starts with ``Customer``; one open balance per customer plus a
    ``TOTAL`` row.
``<Company>_Sales by Customer Detail.csv``
    The multi-row statement handled by :mod:`club_ledger.classifier`.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from ... import fields as F
from ...classifier import StatementResult, classify_statement
from ...logging_setup import get_logger
from ...mapping import FeeBucket, SynonymMapper
from ...names import NameMatcher, normalize_name
from ...normalizers import clean_text, parse_amount, parse_phone
from ..tokenizer import find_header_row, parse, records_from_rows
from ..utils import ImportFileError

_logger = get_logger("club_ledger.ingest.qb_reports")

CONTACT_LIST_SUFFIX = "_Customer Contact List.csv"
SALES_DETAIL_SUFFIX = "_Sales by Customer Detail.csv"
BALANCE_SUMMARY_SUFFIX = "_Customer Balance Summary.csv"

_WEEKDAY_RE = re.compile(r"^(Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)\b")


@dataclass(frozen=True, slots=True)
class ContactRow:
    row_number: int
    full_name: str
    phone: str
    email: str
    contact_name: str
    address: str


def _is_report_noise(first: str) -> bool:
    return (
        not first
        or first.upper() == "TOTAL"
        or first.startswith(("Accrual basis", "Cash basis"))
        or bool(_WEEKDAY_RE.match(first))
    )


def _header_index(rows: Sequence[Sequence[str]], first_cell: str, report: str) -> int:
    key = F.header_key(first_cell)
    idx = find_header_row(rows, lambda r: bool(r) and F.header_key(r[0]) == key)
    if idx is None:
        raise ImportFileError(f"{report}: header row starting with '{first_cell}' not found")
    return idx


def parse_contact_list(text: str) -> list[ContactRow]:
    """Every contact in the list, persons and businesses alike."""

    rows = parse(text)
    hdr = _header_index(rows, "Customer full name", "Customer Contact List")
    name_column = rows[hdr][0]
    records = records_from_rows(rows[hdr], rows[hdr + 1 :])
    contacts: list[ContactRow] = []
    for offset, rec in enumerate(records):
        # The first column is the customer; "Full name" is the contact person
        name = clean_text(rec.get(name_column)) or ""
        if _is_report_noise(name):
            continue
        contacts.append(
            ContactRow(
                row_number=hdr + 2 + offset,
                full_name=name,
                phone=parse_phone(F.resolve(rec, *F.CUSTOMER_PHONE)),
                email=F.resolve(rec, *F.CUSTOMER_EMAIL).strip(),
                contact_name=clean_text(F.resolve(rec, *F.CUSTOMER_CONTACT_NAME)) or "",
                address=clean_text(F.resolve(rec, *F.CUSTOMER_ADDRESS)) or "",
            )
        )
    return contacts


def parse_balance_summary(text: str) -> dict[str, Decimal]:
    """Open balance per customer, keyed by normalized name."""

    rows = parse(text)
    hdr = _header_index(rows, "Customer", "Customer Balance Summary")
    header = rows[hdr]
    balances: dict[str, Decimal] = {}
    for offset, row in enumerate(rows[hdr + 1 :]):
        first = row[0].strip() if row else ""
        if _is_report_noise(first):
            continue
        rec = records_from_rows(header, [row])[0]
        raw = F.resolve(rec, *F.CUSTOMER_BALANCE) or (row[1] if len(row) > 1 else "")
        amount = parse_amount(raw)
        if amount is None:
            _logger.warning(
                "Balance summary row %d: unparseable balance %r for %s; ignored",
                hdr + 2 + offset,
                raw,
                first,
            )
            continue
        balances[normalize_name(first)] = amount
    return balances


def parse_sales_detail(
    text: str,
    *,
    matcher: NameMatcher,
    buckets: SynonymMapper[FeeBucket] | None = None,
) -> StatementResult:
    rows = parse(text)
    return classify_statement(rows, matcher=matcher, buckets=buckets)


__all__ = [
    "BALANCE_SUMMARY_SUFFIX",
    "CONTACT_LIST_SUFFIX",
    "ContactRow",
    "SALES_DETAIL_SUFFIX",
    "parse_balance_summary",
    "parse_contact_list",
    "parse_sales_detail",
]
