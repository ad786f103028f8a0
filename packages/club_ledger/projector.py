"""Derived finance fields and deterministic finance merging.

Invariants maintained for every :class:`~club_ledger.models.FinanceRecord`
returned from this module:

- ``total_owed == sum(fee_buckets)``
- ``total_paid == sum(payment.amount for payment in payments)``
- ``balance == total_paid - total_owed`` (negative means money is owed)
- ``balance_due == max(0, total_owed - total_paid)``
- ``status`` is ``paid`` when ``balance >= 0``, otherwise ``overdue`` when the
  record's overdue flag is set, otherwise ``current``
- when a record has charges, each fee bucket equals the sum of its charges

Derivation only ever reads inputs (buckets, charges, payments, the overdue
flag) and never previously derived totals, so projecting an already projected
record returns an equal record. Sums are exact: amounts keep the precision
they were parsed with and are never rounded here.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .mapping import FeeBucket
from .models import Charge, FeeBuckets, FinancePatch, FinanceRecord, FinanceStatus, Payment

_ZERO = Decimal("0.00")

_OVERDUE_MARKERS = ("overdue", "past due")


@dataclass(frozen=True, slots=True)
class Projection:
    total_owed: Decimal
    total_paid: Decimal
    balance: Decimal
    balance_due: Decimal
    status: FinanceStatus


def project(
    fee_buckets: FeeBuckets,
    payments: Iterable[Payment],
    overdue: bool = False,
) -> Projection:
    """Compute the derived totals and status for buckets and payments.

    Parameters
    ----------
    fee_buckets:
        Amounts owed per bucket.
    payments:
        Payments received; only ``amount`` is read.
    overdue:
        Caller-supplied overdue signal, consulted only when money is owed.
    """

    total_owed = fee_buckets.total()
    total_paid = sum((p.amount for p in payments), _ZERO)
    balance = total_paid - total_owed
    balance_due = max(_ZERO, total_owed - total_paid)
    if balance >= 0:
        status = FinanceStatus.PAID
    elif overdue:
        status = FinanceStatus.OVERDUE
    else:
        status = FinanceStatus.CURRENT
    return Projection(
        total_owed=total_owed,
        total_paid=total_paid,
        balance=balance,
        balance_due=balance_due,
        status=status,
    )


def overdue_signal(status_text: str | None) -> bool:
    """True when an exported status string says the amount is overdue."""

    s = (status_text or "").lower()
    return any(marker in s for marker in _OVERDUE_MARKERS)


def buckets_from_charges(charges: Iterable[Charge]) -> FeeBuckets:
    totals = {b.value: _ZERO for b in FeeBucket}
    for c in charges:
        totals[c.bucket.value] += c.amount
    return FeeBuckets(**totals)


def project_record(record: FinanceRecord) -> FinanceRecord:
    """Return ``record`` with buckets and derived fields recomputed."""

    buckets = buckets_from_charges(record.charges) if record.charges else record.fee_buckets
    p = project(buckets, record.payments, overdue=record.overdue)
    return record.model_copy(
        update={
            "fee_buckets": buckets,
            "total_owed": p.total_owed,
            "total_paid": p.total_paid,
            "balance": p.balance,
            "balance_due": p.balance_due,
            "status": p.status,
        }
    )


def _upsert_by_id[T: (Charge, Payment)](existing: Iterable[T], incoming: Iterable[T]) -> list[T]:
    merged: dict[str, T] = {item.id: item for item in existing}
    for item in incoming:
        merged[item.id] = item
    return list(merged.values())


def _keep_recorded_at(existing: Iterable[Payment], incoming: Iterable[Payment]) -> list[Payment]:
    # A payment re-imported under the same id keeps its first recording time
    first_seen = {p.id: p.recorded_at for p in existing if p.recorded_at is not None}
    out: list[Payment] = []
    for p in incoming:
        recorded_at = first_seen.get(p.id)
        out.append(p.model_copy(update={"recorded_at": recorded_at}) if recorded_at else p)
    return out


def merge_finance(
    existing: FinanceRecord | None,
    patch: FinancePatch,
    now: dt.datetime,
) -> FinanceRecord:
    """Apply ``patch`` to ``existing`` (or to a fresh record) and re-project.

    Charges and payments in the patch replace stored items with the same id
    and are appended otherwise, so merging the same patch twice yields the
    same record apart from ``updated_at``.
    """

    if existing is None:
        base = FinanceRecord(
            entity_id=patch.entity_id,
            entity_name=patch.entity_name,
            season=patch.season,
            created_at=now,
        )
    else:
        base = existing

    charges = _upsert_by_id(base.charges, patch.charges)
    payments = _upsert_by_id(
        base.payments, _keep_recorded_at(base.payments, patch.payments)
    )
    buckets = patch.fee_buckets if patch.fee_buckets is not None else base.fee_buckets

    merged = base.model_copy(
        update={
            "entity_id": patch.entity_id,
            "entity_name": patch.entity_name or base.entity_name,
            "season": patch.season,
            "fee_buckets": buckets,
            "charges": charges,
            "payments": payments,
            "overdue": patch.overdue if patch.overdue is not None else base.overdue,
            "notes": patch.notes if patch.notes is not None else base.notes,
            "created_at": base.created_at or now,
            "updated_at": now,
        }
    )
    return project_record(merged)


__all__ = [
    "Projection",
    "buckets_from_charges",
    "merge_finance",
    "overdue_signal",
    "project",
    "project_record",
]
