"""Turn parsed export rows into planned ledger writes.

Every planner is a generator over adapter output that yields, per source
record, a :class:`~club_ledger.executor.PlannedRecord` (with its writes), a
:class:`~club_ledger.executor.RowError` or a
:class:`~club_ledger.executor.SkippedRow`, preserving input order. Planners
never touch the store; everything they need from it (existing player ids)
arrives through an :class:`~club_ledger.names.EntityDirectory`.

Document keys are deterministic so re-importing the same file converges:

======================  ==================================================
players                 existing id for the name, else ``entity_key(name)``
playerFinances          ``<entity id>-<season>``
sponsors                ``sponsor_key(business name)``
income (sales detail)   ``inv-<invoice #>-<entity id>``
income (invoice paid)   ``qb-invoice-<invoice #>-<entity id>``
income / expenses       SHA-256 fingerprint of the canonical fields
======================  ==================================================

A source that repeats a key (identical lines, several lines of one invoice)
gets ``-2``, ``-3``... appended to later occurrences in file order.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from .classifier import EntityStatement, RowIssue
from .ctv import CanonicalTransaction
from .executor import (
    DocumentWrite,
    FinanceUpsert,
    PlanItem,
    PlannedRecord,
    RowError,
    SkippedRow,
)
from .ingest.adapters.generic_csv import CustomerRow, InvoiceRow
from .ingest.adapters.qb_reports import ContactRow
from .logging_setup import get_logger
from .mapping import (
    ExpenseCategory,
    FeeBucket,
    IncomeCategory,
    PaymentMethod,
    SynonymMapper,
)
from .models import (
    Charge,
    ExpenseRecord,
    FeeBuckets,
    FinancePatch,
    IncomeRecord,
    Payment,
    PlayerRecord,
    SponsorRecord,
)
from .names import EntityDirectory, NameMatcher, finance_key, normalize_name, split_name, sponsor_key
from .normalizers import fmt_amount
from .persistence import EXPENSES, INCOME, PLAYERS, SPONSORS, compute_fingerprint
from .projector import overdue_signal, project

_logger = get_logger("club_ledger.planning")

IMPORT_NOTE = "Imported from QuickBooks CSV"
SUBTOTAL_ADJUSTMENT_ID = "qb-subtotal-adjustment"


@dataclass(frozen=True, slots=True)
class PlanContext:
    """Run-wide inputs shared by every planner."""

    season: str
    recorded_by: str
    now: datetime
    matcher: NameMatcher
    directory: EntityDirectory


class _KeyRegistry:
    """Suffix repeated keys with their occurrence number within one run."""

    def __init__(self) -> None:
        self._seen: Counter[str] = Counter()

    def claim(self, key: str) -> str:
        self._seen[key] += 1
        n = self._seen[key]
        return key if n == 1 else f"{key}-{n}"


def _us_date(d: date | None) -> str:
    return f"{d.month}/{d.day}/{d.year}" if d else "no date"


def _money(d: Decimal) -> str:
    return f"${fmt_amount(d)}"


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "line"


# ---- Expenses and income -----------------------------------------------------


def plan_expenses(
    items: Iterable[CanonicalTransaction | RowError | SkippedRow], ctx: PlanContext
) -> Iterator[PlanItem]:
    keys = _KeyRegistry()
    for tx in items:
        if isinstance(tx, (RowError, SkippedRow)):
            yield tx
            continue
        assert tx.date is not None
        vendor = tx.counterparty_name or "Unknown Vendor"
        record = ExpenseRecord(
            date=tx.date,
            category=ExpenseCategory(tx.category_canonical),
            # Expenses are stored as positive amounts
            amount=abs(tx.amount),
            vendor=vendor,
            description=tx.description or f"QuickBooks import - {tx.counterparty_name or 'expense'}",
            payment_method=PaymentMethod(tx.payment_method_canonical),
            check_number=tx.reference_number,
            season=ctx.season,
            is_paid=True,
            paid_date=tx.date,
            notes=IMPORT_NOTE,
            recorded_by=ctx.recorded_by,
            created_at=ctx.now,
            updated_at=ctx.now,
        )
        key = keys.claim(compute_fingerprint(kind="expense", tx=tx))
        yield PlannedRecord(
            row_number=tx.row_number,
            summary=(
                f"{_us_date(tx.date)} | {vendor} | {record.category} | {_money(record.amount)}"
            ),
            writes=(DocumentWrite(EXPENSES, key, record.to_document()),),
        )


def plan_income(
    items: Iterable[CanonicalTransaction | RowError | SkippedRow], ctx: PlanContext
) -> Iterator[PlanItem]:
    keys = _KeyRegistry()
    for tx in items:
        if isinstance(tx, (RowError, SkippedRow)):
            yield tx
            continue
        assert tx.date is not None
        source = tx.counterparty_name or "Unknown Source"
        method = PaymentMethod(tx.payment_method_canonical)
        player_id = None
        if tx.counterparty_name and ctx.matcher.is_person(tx.counterparty_name):
            player_id = ctx.directory.lookup(tx.counterparty_name)
        record = IncomeRecord(
            date=tx.date,
            category=IncomeCategory(tx.category_canonical),
            amount=abs(tx.amount),
            source=source,
            description=tx.description or f"QuickBooks import - {tx.counterparty_name or 'income'}",
            payment_method=method,
            check_number=tx.reference_number if method is PaymentMethod.CHECK else None,
            reference_number=tx.reference_number,
            player_id=player_id,
            season=ctx.season,
            notes=IMPORT_NOTE,
            recorded_by=ctx.recorded_by,
            created_at=ctx.now,
            updated_at=ctx.now,
        )
        key = keys.claim(compute_fingerprint(kind="income", tx=tx))
        yield PlannedRecord(
            row_number=tx.row_number,
            summary=(
                f"{_us_date(tx.date)} | {source} | {record.category} | {_money(record.amount)}"
            ),
            writes=(DocumentWrite(INCOME, key, record.to_document()),),
        )


# ---- People and sponsors -----------------------------------------------------


def _player_write(
    key: str,
    full_name: str,
    *,
    email: str,
    phone: str,
    address: str,
    notes: str,
    now: datetime,
) -> tuple[PlayerRecord, DocumentWrite]:
    first, last = split_name(full_name)
    record = PlayerRecord(
        display_name=" ".join(full_name.split()),
        first_name=first,
        last_name=last,
        contact_email=email,
        contact_phone=phone,
        address=address,
        active=True,
        notes=notes,
        created_at=now,
        updated_at=now,
    )
    # Merge so team assignments and other app-edited fields survive re-imports
    return record, DocumentWrite(PLAYERS, key, record.to_document(), merge=True)


def _sponsor_write(
    name: str,
    *,
    contact_name: str,
    email: str,
    phone: str,
    address: str,
    ctx: PlanContext,
) -> tuple[SponsorRecord, DocumentWrite]:
    record = SponsorRecord(
        business_name=name,
        contact_name=contact_name,
        contact_email=email,
        contact_phone=phone,
        address=address,
        season=ctx.season,
        created_at=ctx.now,
    )
    write = DocumentWrite(
        SPONSORS,
        sponsor_key(name),
        record.to_document(),
        merge=True,
        preserve=("createdAt", "level", "displayOnPublicSite"),
    )
    return record, write


def plan_customers(
    items: Iterable[CustomerRow | RowError], ctx: PlanContext
) -> Iterator[PlanItem]:
    """Customers become players; denylisted businesses become sponsors.

    A positive balance also opens the customer's finance record with a single
    ``other`` charge for the amount owed.
    """

    for row in items:
        if isinstance(row, RowError):
            yield row
            continue
        if ctx.matcher.is_sample(row.full_name):
            yield SkippedRow(row.row_number, f"sample customer {row.full_name!r}")
            continue
        if ctx.matcher.is_denylisted(row.full_name):
            sponsor, write = _sponsor_write(
                row.full_name,
                contact_name="",
                email=row.email,
                phone=row.phone,
                address=row.address,
                ctx=ctx,
            )
            yield PlannedRecord(
                row_number=row.row_number,
                summary=f"Sponsor: {sponsor.business_name} ({row.email or 'no email'})",
                writes=(write,),
            )
            continue

        entity_id = ctx.directory.resolve(row.full_name)
        notes = ". ".join(
            part
            for part in (
                IMPORT_NOTE,
                f"Address: {row.address}" if row.address else "",
                f"QB Balance: {_money(row.balance)}" if row.balance is not None else "",
            )
            if part
        )
        player, write = _player_write(
            entity_id,
            row.full_name,
            email=row.email,
            phone=row.phone,
            address=row.address,
            notes=notes,
            now=ctx.now,
        )
        writes: list[DocumentWrite | FinanceUpsert] = [write]
        if row.balance is not None and row.balance > 0:
            patch = FinancePatch(
                entity_id=entity_id,
                entity_name=player.display_name,
                season=ctx.season,
                charges=(
                    Charge(
                        id="qb-customer-balance",
                        bucket=FeeBucket.OTHER,
                        amount=row.balance,
                        description="Open balance from QuickBooks customer list",
                    ),
                ),
            )
            writes.append(FinanceUpsert(finance_key(entity_id, ctx.season), patch))

        balance = f" | Balance: {_money(row.balance)}" if row.balance is not None else ""
        yield PlannedRecord(
            row_number=row.row_number,
            summary=(
                f"{player.first_name} {player.last_name} | {row.email or 'no email'}"
                f" | {row.phone or 'no phone'}{balance}"
            ),
            writes=tuple(writes),
        )


def plan_report_players(contacts: Iterable[ContactRow], ctx: PlanContext) -> Iterator[PlanItem]:
    for c in contacts:
        if ctx.matcher.is_denylisted(c.full_name):
            continue
        player, write = _player_write(
            ctx.directory.resolve(c.full_name),
            c.full_name,
            email=c.email,
            phone=c.phone,
            address=c.address,
            notes="Imported from QuickBooks contact list",
            now=ctx.now,
        )
        yield PlannedRecord(
            row_number=c.row_number,
            summary=f"Player: {player.first_name} {player.last_name} ({c.email or 'no email'})",
            writes=(write,),
        )


def plan_report_sponsors(contacts: Iterable[ContactRow], ctx: PlanContext) -> Iterator[PlanItem]:
    for c in contacts:
        if not ctx.matcher.is_sponsor(c.full_name):
            continue
        sponsor, write = _sponsor_write(
            c.full_name,
            contact_name=c.contact_name,
            email=c.email,
            phone=c.phone,
            address=c.address,
            ctx=ctx,
        )
        yield PlannedRecord(
            row_number=c.row_number,
            summary=f"Sponsor: {sponsor.business_name} ({c.email or 'no email'})",
            writes=(write,),
        )


# ---- Invoices ----------------------------------------------------------------


def plan_invoices(
    items: Iterable[InvoiceRow | RowError | SkippedRow],
    ctx: PlanContext,
    *,
    buckets: SynonymMapper[FeeBucket],
) -> Iterator[PlanItem]:
    """One finance upsert per invoice, plus an income line for any paid portion.

    The invoice amount becomes a charge (bucket mapped from the memo, ``other``
    when nothing matches); the paid portion, ``amount - balance due``, becomes
    a payment. A status containing "overdue" or "past due" sets the record's
    overdue flag. The stated status is otherwise informational: ``paid``
    versus ``current`` is always derived from the amounts.
    """

    keys = _KeyRegistry()
    for inv in items:
        if isinstance(inv, (RowError, SkippedRow)):
            yield inv
            continue
        if ctx.matcher.is_denylisted(inv.customer):
            yield SkippedRow(inv.row_number, f"non-person customer {inv.customer!r}")
            continue

        entity_id = ctx.directory.resolve(inv.customer)
        invoice_amount = abs(inv.amount)
        remaining = abs(inv.balance_due) if inv.balance_due is not None else invoice_amount
        paid = invoice_amount - remaining
        overdue = overdue_signal(inv.status)

        if inv.invoice_number:
            source_id = keys.claim(inv.invoice_number)
        else:
            source_id = keys.claim(f"row-{inv.row_number}")
        number_note = f" #{inv.invoice_number}" if inv.invoice_number else ""

        charge = Charge(
            id=f"inv-{source_id}",
            bucket=buckets.map(inv.description),
            amount=invoice_amount,
            date=inv.date,
            reference=inv.invoice_number,
            description=inv.description or f"QuickBooks invoice{number_note}",
        )
        payments: tuple[Payment, ...] = ()
        writes: list[DocumentWrite | FinanceUpsert] = []
        if paid > 0:
            payments = (
                Payment(
                    id=f"qb-invoice-{source_id}",
                    amount=paid,
                    date=inv.date,
                    method=PaymentMethod.OTHER,
                    reference=inv.invoice_number,
                    notes=f"Imported from QuickBooks invoice{number_note}",
                    recorded_by=ctx.recorded_by,
                    recorded_at=ctx.now,
                ),
            )
            income = IncomeRecord(
                date=inv.date or ctx.now.date(),
                category=IncomeCategory.PLAYER_PAYMENTS,
                amount=paid,
                source=inv.customer,
                description=inv.description
                or f"Invoice payment{number_note} from {inv.customer}",
                payment_method=PaymentMethod.OTHER,
                reference_number=inv.invoice_number,
                player_id=entity_id,
                season=ctx.season,
                notes="Imported from QuickBooks invoice CSV",
                recorded_by=ctx.recorded_by,
                created_at=ctx.now,
                updated_at=ctx.now,
            )
            writes.append(
                DocumentWrite(INCOME, f"qb-invoice-{source_id}-{entity_id}", income.to_document())
            )

        patch = FinancePatch(
            entity_id=entity_id,
            entity_name=inv.customer,
            season=ctx.season,
            charges=(charge,),
            payments=payments,
            overdue=overdue,
        )
        writes.insert(0, FinanceUpsert(finance_key(entity_id, ctx.season), patch))

        this_invoice = project(
            FeeBuckets(**{charge.bucket.value: invoice_amount}), payments, overdue=overdue
        )
        yield PlannedRecord(
            row_number=inv.row_number,
            summary=(
                f"{inv.customer} | {_us_date(inv.date)} | Total: {_money(invoice_amount)}"
                f" | Paid: {_money(paid)} | Due: {_money(remaining)} | {this_invoice.status}"
            ),
            writes=tuple(writes),
        )


# ---- QuickBooks sales detail + balance summary ---------------------------------


def _charges(statement: EntityStatement) -> list[Charge]:
    keys = _KeyRegistry()
    out: list[Charge] = []
    for d in statement.details:
        ref = d.transaction.reference_number or f"row-{d.row_number}"
        out.append(
            Charge(
                id=keys.claim(f"{ref}-{_slug(d.product)}"),
                bucket=d.bucket,
                amount=d.transaction.amount,
                date=d.transaction.date,
                reference=d.transaction.reference_number,
                description=d.transaction.description,
            )
        )
    return out


def _breakdown(statement: EntityStatement) -> str:
    per_product: dict[str, Decimal] = {}
    for d in statement.details:
        label = d.product or d.transaction.description or "Other"
        per_product[label] = per_product.get(label, Decimal("0")) + d.transaction.amount
    return " | ".join(f"{label}: {_money(amount)}" for label, amount in per_product.items())


def plan_report_finances(
    statements: Iterable[EntityStatement],
    balances: Mapping[str, Decimal],
    ctx: PlanContext,
    *,
    issues: Iterable[RowIssue] = (),
) -> Iterator[PlanItem]:
    """Finance record per statement entity, from invoices plus open balance.

    ``total paid = total invoiced - open balance``; an entity absent from the
    balance summary has an open balance of zero. The paid amount becomes one
    aggregate payment keyed by entity and season.

    The report subtotal is the amount invoiced. When it differs from the sum of
    the detail rows, an ``other`` charge for the difference keeps the record's
    owed total equal to the subtotal.
    """

    for issue in issues:
        yield RowError(issue.row_number, f"{issue.entity}: {issue.message}")

    for st in statements:
        entity_id = ctx.directory.resolve(st.name)
        charges = _charges(st)
        detail_total = st.detail_total()
        total_invoiced = st.total_invoiced if st.total_invoiced is not None else detail_total
        if st.total_invoiced is not None and st.total_invoiced != detail_total:
            _logger.warning(
                "%s: subtotal %s differs from the sum of detail rows %s",
                st.name,
                fmt_amount(st.total_invoiced),
                fmt_amount(detail_total),
            )
            charges.append(
                Charge(
                    id=SUBTOTAL_ADJUSTMENT_ID,
                    bucket=FeeBucket.OTHER,
                    amount=st.total_invoiced - detail_total,
                    description="QuickBooks subtotal adjustment",
                )
            )
        open_balance = balances.get(normalize_name(st.name), Decimal("0"))
        total_paid = total_invoiced - open_balance

        payments: tuple[Payment, ...] = ()
        if total_paid > 0:
            dates = [c.date for c in charges if c.date is not None]
            payments = (
                Payment(
                    id=f"qb-import-{entity_id}-{ctx.season}",
                    amount=total_paid,
                    date=max(dates) if dates else None,
                    method=PaymentMethod.OTHER,
                    notes="Imported from QuickBooks",
                    recorded_by=ctx.recorded_by,
                    recorded_at=ctx.now,
                ),
            )
        patch = FinancePatch(
            entity_id=entity_id,
            entity_name=st.name,
            season=ctx.season,
            charges=tuple(charges),
            payments=payments,
            notes=_breakdown(st),
        )
        yield PlannedRecord(
            row_number=st.header_row,
            summary=(
                f"{st.name}: Invoiced {_money(total_invoiced)}, Paid {_money(total_paid)},"
                f" Balance {_money(open_balance)}"
            ),
            writes=(FinanceUpsert(finance_key(entity_id, ctx.season), patch),),
        )


def plan_report_income(statements: Iterable[EntityStatement], ctx: PlanContext) -> Iterator[PlanItem]:
    """One income line per positive invoice detail row."""

    keys = _KeyRegistry()
    for st in statements:
        entity_id = ctx.directory.resolve(st.name)
        for d in st.details:
            tx = d.transaction
            if tx.amount <= 0:
                continue
            assert tx.date is not None
            num = tx.reference_number or f"row-{d.row_number}"
            record = IncomeRecord(
                date=tx.date,
                category=IncomeCategory.PLAYER_PAYMENTS,
                amount=tx.amount,
                source=st.name,
                description=tx.description or d.product,
                payment_method=PaymentMethod.OTHER,
                reference_number=tx.reference_number,
                player_id=entity_id,
                season=ctx.season,
                notes=f"QB Invoice #{num}",
                recorded_by=ctx.recorded_by,
                created_at=ctx.now,
                updated_at=ctx.now,
            )
            yield PlannedRecord(
                row_number=d.row_number,
                summary=f"Invoice #{num}: {st.name} - {_money(tx.amount)} ({d.product})",
                writes=(
                    DocumentWrite(INCOME, keys.claim(f"inv-{num}-{entity_id}"), record.to_document()),
                ),
            )


__all__ = [
    "IMPORT_NOTE",
    "SUBTOTAL_ADJUSTMENT_ID",
    "PlanContext",
    "plan_customers",
    "plan_expenses",
    "plan_income",
    "plan_invoices",
    "plan_report_finances",
    "plan_report_income",
    "plan_report_players",
    "plan_report_sponsors",
]
