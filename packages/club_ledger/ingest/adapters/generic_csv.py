"""Adapters for flat QuickBooks list exports (one record per row).

Supported exports and the logical fields read from them (header names are
resolved through the synonym tuples in :mod:`club_ledger.fields`):

- expenses: Date, Vendor/Payee, Category/Account, Amount, Payment Method,
  Check #, Memo
- income: Date, Source/Customer, Category/Account, Amount, Payment Method,
  Reference #, Memo
- customers: Name ("Last, First" allowed), Email, Phone, Address, Balance
- invoices: Customer, Date, Amount, Status, Balance Due, Invoice #

Each adapter yields one item per input record, in order: a parsed row, a
:class:`~club_ledger.executor.RowError` naming the row and the offending raw
value, or a :class:`~club_ledger.executor.SkippedRow` for a zero amount. Row
numbers are spreadsheet line numbers (the header is row 1).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ... import fields as F
from ...ctv import CanonicalTransaction
from ...executor import RowError, SkippedRow
from ...mapping import ExpenseCategory, IncomeCategory, PaymentMethod, SynonymMapper
from ...normalizers import clean_text, parse_amount, parse_date, parse_phone

FIRST_DATA_ROW = 2


@dataclass(frozen=True, slots=True)
class CustomerRow:
    row_number: int
    full_name: str
    email: str
    phone: str
    address: str
    balance: Decimal | None


@dataclass(frozen=True, slots=True)
class InvoiceRow:
    row_number: int
    customer: str
    date: date | None
    amount: Decimal
    status: str
    balance_due: Decimal | None
    invoice_number: str | None
    description: str


def _transaction(
    row: Mapping[str, str],
    row_number: int,
    *,
    date_fields: tuple[str, ...],
    party_fields: tuple[str, ...],
    category_fields: tuple[str, ...],
    amount_fields: tuple[str, ...],
    reference_fields: tuple[str, ...],
    categories: SynonymMapper[ExpenseCategory] | SynonymMapper[IncomeCategory],
    methods: SynonymMapper[PaymentMethod],
) -> CanonicalTransaction | RowError | SkippedRow:
    date_raw = F.resolve(row, *date_fields)
    amount_raw = F.resolve(row, *amount_fields)

    when = parse_date(date_raw)
    if when is None:
        return RowError(row_number, f'Invalid or missing date "{date_raw}"')
    amount = parse_amount(amount_raw)
    if amount is None:
        return RowError(row_number, f'Invalid or missing amount "{amount_raw}"')
    if amount == 0:
        return SkippedRow(row_number, "zero amount")

    category_raw = F.resolve(row, *category_fields)
    method_raw = F.resolve(row, *F.PAYMENT_METHOD)
    return CanonicalTransaction(
        row_number=row_number,
        date=when,
        category_raw=category_raw,
        category_canonical=categories.map(category_raw).value,
        amount=amount,
        counterparty_name=clean_text(F.resolve(row, *party_fields)) or "",
        payment_method_raw=method_raw,
        payment_method_canonical=methods.map(method_raw).value,
        reference_number=F.resolve(row, *reference_fields).strip() or None,
        description=clean_text(F.resolve(row, *F.MEMO)) or "",
    )


def expense_rows(
    records: Iterable[Mapping[str, str]],
    *,
    categories: SynonymMapper[ExpenseCategory],
    methods: SynonymMapper[PaymentMethod],
) -> Iterator[CanonicalTransaction | RowError | SkippedRow]:
    for i, row in enumerate(records):
        yield _transaction(
            row,
            FIRST_DATA_ROW + i,
            date_fields=F.EXPENSE_DATE,
            party_fields=F.EXPENSE_VENDOR,
            category_fields=F.EXPENSE_CATEGORY,
            amount_fields=F.EXPENSE_AMOUNT,
            reference_fields=F.EXPENSE_CHECK_NUMBER,
            categories=categories,
            methods=methods,
        )


def income_rows(
    records: Iterable[Mapping[str, str]],
    *,
    categories: SynonymMapper[IncomeCategory],
    methods: SynonymMapper[PaymentMethod],
) -> Iterator[CanonicalTransaction | RowError | SkippedRow]:
    for i, row in enumerate(records):
        yield _transaction(
            row,
            FIRST_DATA_ROW + i,
            date_fields=F.INCOME_DATE,
            party_fields=F.INCOME_SOURCE,
            category_fields=F.INCOME_CATEGORY,
            amount_fields=F.INCOME_AMOUNT,
            reference_fields=F.INCOME_REFERENCE,
            categories=categories,
            methods=methods,
        )


def customer_rows(records: Iterable[Mapping[str, str]]) -> Iterator[CustomerRow | RowError]:
    for i, row in enumerate(records):
        row_number = FIRST_DATA_ROW + i
        full_name = clean_text(F.resolve(row, *F.CUSTOMER_NAME))
        if not full_name:
            yield RowError(row_number, "Missing customer name")
            continue
        balance_raw = F.resolve(row, *F.CUSTOMER_BALANCE)
        balance = parse_amount(balance_raw)
        if balance is None and balance_raw.strip() not in ("", "-"):
            yield RowError(row_number, f'Invalid balance "{balance_raw}"')
            continue
        yield CustomerRow(
            row_number=row_number,
            full_name=full_name,
            email=F.resolve(row, *F.CUSTOMER_EMAIL).strip(),
            phone=parse_phone(F.resolve(row, *F.CUSTOMER_PHONE)),
            address=clean_text(F.resolve(row, *F.CUSTOMER_ADDRESS)) or "",
            balance=balance,
        )


def invoice_rows(
    records: Iterable[Mapping[str, str]],
) -> Iterator[InvoiceRow | RowError | SkippedRow]:
    for i, row in enumerate(records):
        row_number = FIRST_DATA_ROW + i
        customer = clean_text(F.resolve(row, *F.INVOICE_CUSTOMER))
        if not customer:
            yield RowError(row_number, "Missing customer name")
            continue
        amount_raw = F.resolve(row, *F.INVOICE_AMOUNT)
        amount = parse_amount(amount_raw)
        if amount is None:
            yield RowError(row_number, f'Invalid or missing amount "{amount_raw}"')
            continue
        if amount == 0:
            yield SkippedRow(row_number, "zero amount")
            continue
        date_raw = F.resolve(row, *F.INVOICE_DATE)
        when = parse_date(date_raw)
        if when is None and date_raw.strip():
            yield RowError(row_number, f'Invalid date "{date_raw}"')
            continue
        balance_raw = F.resolve(row, *F.INVOICE_BALANCE_DUE)
        balance_due = parse_amount(balance_raw)
        if balance_due is None and balance_raw.strip() not in ("", "-"):
            yield RowError(row_number, f'Invalid balance due "{balance_raw}"')
            continue
        yield InvoiceRow(
            row_number=row_number,
            customer=customer,
            date=when,
            amount=amount,
            status=F.resolve(row, *F.INVOICE_STATUS).strip(),
            balance_due=balance_due,
            invoice_number=F.resolve(row, *F.INVOICE_NUMBER).strip() or None,
            description=clean_text(F.resolve(row, *F.MEMO)) or "",
        )


__all__ = [
    "CustomerRow",
    "InvoiceRow",
    "customer_rows",
    "expense_rows",
    "income_rows",
    "invoice_rows",
]
