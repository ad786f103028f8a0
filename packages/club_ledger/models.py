"""Ledger document models for ``club_ledger``.

Every record the importers write is a pydantic model serialized to the web
application's camelCase document schema. ``to_document()`` produces the JSON
shape stored in the ledger (decimals as strings, dates as ISO strings) and
``from_document()`` reads one back, ignoring fields owned by the web
application that the importers never touch.

Finance records are never merged by spreading dictionaries: changes arrive as
a :class:`FinancePatch` and are applied by
:func:`club_ledger.projector.merge_finance`.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from decimal import Decimal
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .mapping import ExpenseCategory, FeeBucket, IncomeCategory, PaymentMethod

_ZERO = Decimal("0.00")


class FinanceStatus(StrEnum):
    PAID = "paid"
    CURRENT = "current"
    OVERDUE = "overdue"


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> Self:
        return cls.model_validate(dict(data))


# ---------------------------------------------------------------------------
# Finance records
# ---------------------------------------------------------------------------


class FeeBuckets(_Document):
    """Amounts owed per fee bucket; the sum is the record's ``totalOwed``."""

    model_config = ConfigDict(frozen=True)

    registration: Decimal = _ZERO
    uniform: Decimal = _ZERO
    tournament: Decimal = _ZERO
    facility: Decimal = _ZERO
    equipment: Decimal = _ZERO
    other: Decimal = _ZERO

    def total(self) -> Decimal:
        return sum((getattr(self, b.value) for b in FeeBucket), _ZERO)


class Charge(_Document):
    """One fee line (typically an invoice line) contributing to a bucket."""

    model_config = ConfigDict(frozen=True)

    id: str
    bucket: FeeBucket
    amount: Decimal
    date: dt.date | None = None
    reference: str | None = None
    description: str = ""


class Payment(_Document):
    model_config = ConfigDict(frozen=True)

    id: str
    amount: Decimal
    date: dt.date | None = None
    method: PaymentMethod = PaymentMethod.OTHER
    reference: str | None = None
    notes: str = ""
    recorded_by: str
    recorded_at: dt.datetime | None = None


class FinanceRecord(_Document):
    """Per-entity, per-season aggregate stored in ``playerFinances``.

    The derived fields (``total_owed`` through ``status``) are always written
    by the projector; they are stored so the web application can list and
    filter records without recomputing them.
    """

    entity_id: str
    entity_name: str
    season: str
    fee_buckets: FeeBuckets = Field(default_factory=FeeBuckets)
    charges: list[Charge] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    total_owed: Decimal = _ZERO
    total_paid: Decimal = _ZERO
    balance: Decimal = _ZERO
    balance_due: Decimal = _ZERO
    status: FinanceStatus = FinanceStatus.PAID
    overdue: bool = False
    notes: str = ""
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class FinancePatch(_Document):
    """The fields an import may change on a :class:`FinanceRecord`.

    Charges and payments are upserted by ``id``. ``fee_buckets``, ``overdue``
    and ``notes`` replace the stored value only when set. Derived totals are
    not part of a patch; they are recomputed after every merge.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    entity_id: str
    entity_name: str
    season: str
    charges: tuple[Charge, ...] = ()
    payments: tuple[Payment, ...] = ()
    fee_buckets: FeeBuckets | None = None
    overdue: bool | None = None
    notes: str | None = None

    @field_validator("entity_id", "season")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be non-empty")
        return v

    @field_validator("charges", "payments")
    @classmethod
    def _unique_ids(cls, v: tuple[Any, ...]) -> tuple[Any, ...]:
        seen: set[str] = set()
        for item in v:
            if item.id in seen:
                raise ValueError(f"duplicate id {item.id!r}")
            seen.add(item.id)
        return v


# ---------------------------------------------------------------------------
# Standalone documents
# ---------------------------------------------------------------------------


class PlayerRecord(_Document):
    """A person entity in ``players``; written with merge so app-owned fields survive."""

    display_name: str
    first_name: str
    last_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    address: str = ""
    active: bool = True
    notes: str = ""
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class SponsorRecord(_Document):
    business_name: str
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""
    address: str = ""
    level: str = "bronze"
    display_on_public_site: bool = True
    season: str
    created_at: dt.datetime | None = None


class IncomeRecord(_Document):
    date: dt.date
    category: IncomeCategory
    amount: Decimal
    source: str
    description: str
    payment_method: PaymentMethod
    check_number: str | None = None
    reference_number: str | None = None
    player_id: str | None = None
    season: str
    notes: str = ""
    recorded_by: str
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class ExpenseRecord(_Document):
    date: dt.date
    category: ExpenseCategory
    amount: Decimal
    vendor: str
    description: str
    payment_method: PaymentMethod
    check_number: str | None = None
    season: str
    is_paid: bool = True
    paid_date: dt.date | None = None
    notes: str = ""
    recorded_by: str
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    @field_validator("amount")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("expense amounts are stored as positive values")
        return v


__all__ = [
    "Charge",
    "ExpenseRecord",
    "FeeBuckets",
    "FinancePatch",
    "FinanceRecord",
    "FinanceStatus",
    "IncomeRecord",
    "Payment",
    "PlayerRecord",
    "SponsorRecord",
]
