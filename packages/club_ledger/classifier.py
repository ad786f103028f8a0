"""Row classifier for multi-row "Sales by Customer Detail" statements.

The report interleaves three untagged row kinds in one table::

    Jane Doe                                                  <- entity header
    ,3/1/2025,Invoice,1001,Registration,,1,250.00,250.00,250  <- detail
    Total for Jane Doe,,,,,,,,250.00                          <- subtotal

Classification is an explicit two-state machine. ``step`` is pure: it takes
the current state and one row and returns the next state plus at most one
event. ``classify_statement`` folds the events of a whole report into one
:class:`EntityStatement` per entity.

Transitions
-----------
- empty rows and report footers (``Accrual basis ...``, ``Cash basis ...``,
  weekday timestamps, ``TOTAL``) are skipped in any state;
- ``Total for <name>`` emits a :class:`Subtotal` when inside an entity and
  always returns to :class:`SeekingEntity`;
- a non-empty first column with an empty date column is an entity header and
  enters :class:`InEntity`, unless the name is denylisted, in which case the
  machine stays in :class:`SeekingEntity` and the entity's rows are dropped;
- a row with a date inside an entity is a detail. Unparseable dates or
  amounts produce a :class:`RowIssue`; zero amounts are dropped.

A missing subtotal is tolerated: the next header simply replaces the context.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from .ctv import CanonicalTransaction
from .fields import header_key
from .ingest.tokenizer import find_header_row
from .mapping import FeeBucket, PaymentMethod, SynonymMapper, fee_bucket_mapper
from .names import NameMatcher, normalize_name
from .normalizers import clean_text, parse_amount, parse_date

_SUBTOTAL_PREFIX = "Total for "
_FOOTER_PREFIXES = ("Accrual basis", "Cash basis")
_TIMESTAMP_RE = re.compile(
    r"^(Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday),? ", re.IGNORECASE
)
_DATE_HEADER = "transaction date"


# ---- States ---------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SeekingEntity:
    pass


@dataclass(frozen=True, slots=True)
class InEntity:
    name: str


type ClassifierState = SeekingEntity | InEntity


# ---- Events ---------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EntityHeader:
    row_number: int
    name: str


@dataclass(frozen=True, slots=True)
class DetailRow:
    """A dated transaction line attributed to the current entity."""

    row_number: int
    entity: str
    transaction: CanonicalTransaction
    transaction_type: str
    product: str
    quantity: Decimal | None
    price: Decimal | None
    open_balance: Decimal | None

    @property
    def bucket(self) -> FeeBucket:
        return FeeBucket(self.transaction.category_canonical)


@dataclass(frozen=True, slots=True)
class Subtotal:
    row_number: int
    entity: str
    total: Decimal | None


@dataclass(frozen=True, slots=True)
class RowIssue:
    row_number: int
    entity: str
    message: str


type ClassifierEvent = EntityHeader | DetailRow | Subtotal | RowIssue


# ---- Layout ---------------------------------------------------------------

_LAYOUT_SYNONYMS: dict[str, tuple[str, ...]] = {
    "date": ("Transaction date", "Date", "Txn Date"),
    "txn_type": ("Transaction type", "Type"),
    "num": ("Num", "No.", "Invoice #"),
    "product": ("Product/Service", "Product/Service full name", "Item"),
    "description": ("Memo/Description", "Description", "Memo"),
    "quantity": ("Quantity", "Qty"),
    "price": ("Sales price", "Sales Price", "Rate", "Price"),
    "amount": ("Amount",),
    "balance": ("Balance", "Open balance"),
}


@dataclass(frozen=True, slots=True)
class StatementLayout:
    """Column positions of the statement table (0-based)."""

    name: int = 0
    date: int = 1
    txn_type: int = 2
    num: int = 3
    product: int = 4
    description: int = 5
    quantity: int = 6
    price: int = 7
    amount: int = 8
    balance: int = 9

    @classmethod
    def from_header(cls, header: Sequence[str]) -> StatementLayout:
        """Derive positions from a header row, keeping defaults for unknown columns."""

        index: dict[str, int] = {}
        for pos, cell in enumerate(header):
            index.setdefault(header_key(cell), pos)
        found: dict[str, int] = {}
        for attr, names in _LAYOUT_SYNONYMS.items():
            for n in names:
                pos = index.get(header_key(n))
                if pos is not None:
                    found[attr] = pos
                    break
        return cls(**found)


def is_statement_header(row: Sequence[str]) -> bool:
    return any(header_key(c) == _DATE_HEADER for c in row)


# ---- Transition function --------------------------------------------------


def _cell(row: Sequence[str], idx: int) -> str:
    return row[idx].strip() if 0 <= idx < len(row) else ""


def _is_footer(row: Sequence[str], layout: StatementLayout) -> bool:
    first = _cell(row, layout.name)
    if first.startswith(_FOOTER_PREFIXES) or _TIMESTAMP_RE.match(first):
        return True
    return first.upper() == "TOTAL" or _cell(row, layout.date).upper() == "TOTAL"


def step(
    state: ClassifierState,
    row: Sequence[str],
    row_number: int,
    layout: StatementLayout,
    matcher: NameMatcher,
    *,
    buckets: SynonymMapper[FeeBucket] | None = None,
) -> tuple[ClassifierState, ClassifierEvent | None]:
    """Advance the machine by one row."""

    if not any(c.strip() for c in row) or _is_footer(row, layout):
        return state, None

    first = _cell(row, layout.name)
    date_raw = _cell(row, layout.date)

    if first.startswith(_SUBTOTAL_PREFIX):
        if isinstance(state, InEntity):
            total = parse_amount(_cell(row, layout.amount))
            return SeekingEntity(), Subtotal(row_number, state.name, total)
        return SeekingEntity(), None

    if first and not date_raw:
        if matcher.is_denylisted(first):
            return SeekingEntity(), None
        return InEntity(first), EntityHeader(row_number, first)

    if not date_raw or not isinstance(state, InEntity):
        return state, None

    amount_raw = _cell(row, layout.amount)
    when = parse_date(date_raw)
    if when is None:
        return state, RowIssue(row_number, state.name, f'Invalid date "{date_raw}"')
    amount = parse_amount(amount_raw)
    if amount is None:
        return state, RowIssue(row_number, state.name, f'Invalid amount "{amount_raw}"')
    if amount == 0:
        return state, None

    mapper = buckets or fee_bucket_mapper()
    product = _cell(row, layout.product)
    description = clean_text(_cell(row, layout.description)) or product
    num = _cell(row, layout.num)
    ctv = CanonicalTransaction(
        row_number=row_number,
        date=when,
        category_raw=product,
        category_canonical=mapper.map(product).value,
        amount=amount,
        counterparty_name=state.name,
        payment_method_raw="",
        payment_method_canonical=PaymentMethod.OTHER.value,
        reference_number=num or None,
        description=description,
    )
    return state, DetailRow(
        row_number=row_number,
        entity=state.name,
        transaction=ctv,
        transaction_type=_cell(row, layout.txn_type),
        product=product,
        quantity=parse_amount(_cell(row, layout.quantity)),
        price=parse_amount(_cell(row, layout.price)),
        open_balance=parse_amount(_cell(row, layout.balance)),
    )


# ---- Folding --------------------------------------------------------------


@dataclass(slots=True)
class EntityStatement:
    name: str
    header_row: int = 0
    details: list[DetailRow] = field(default_factory=list)
    total_invoiced: Decimal | None = None

    def detail_total(self) -> Decimal:
        return sum((d.transaction.amount for d in self.details), Decimal("0"))


@dataclass(slots=True)
class StatementResult:
    statements: list[EntityStatement]
    issues: list[RowIssue]
    final_state: ClassifierState


def classify_statement(
    rows: Sequence[Sequence[str]],
    *,
    matcher: NameMatcher,
    layout: StatementLayout | None = None,
    buckets: SynonymMapper[FeeBucket] | None = None,
    first_row_number: int = 1,
) -> StatementResult:
    """Fold a sales-detail report into per-entity statements.

    When ``layout`` is omitted the header row (the one with a "Transaction
    date" cell) is located and used; rows above it (the report title block)
    are ignored. Without a header the default QuickBooks layout applies to
    every row. ``first_row_number`` is the number reported for ``rows[0]``.

    An entity whose header appears more than once accumulates into a single
    statement.
    """

    start = 0
    if layout is None:
        hdr = find_header_row(rows, is_statement_header)
        if hdr is not None:
            layout = StatementLayout.from_header(rows[hdr])
            start = hdr + 1
        else:
            layout = StatementLayout()
    mapper = buckets or fee_bucket_mapper()

    by_name: dict[str, EntityStatement] = {}
    issues: list[RowIssue] = []
    state: ClassifierState = SeekingEntity()

    for offset, row in enumerate(rows[start:], start=start):
        state, event = step(
            state, row, first_row_number + offset, layout, matcher, buckets=mapper
        )
        match event:
            case EntityHeader(row_number=n, name=name):
                by_name.setdefault(
                    normalize_name(name), EntityStatement(name=name, header_row=n)
                )
            case DetailRow(entity=entity):
                by_name[normalize_name(entity)].details.append(event)
            case Subtotal(entity=entity, total=total):
                by_name[normalize_name(entity)].total_invoiced = total
            case RowIssue():
                issues.append(event)
            case None:
                pass

    return StatementResult(statements=list(by_name.values()), issues=issues, final_state=state)


__all__ = [
    "ClassifierEvent",
    "ClassifierState",
    "DetailRow",
    "EntityHeader",
    "EntityStatement",
    "InEntity",
    "RowIssue",
    "SeekingEntity",
    "StatementLayout",
    "StatementResult",
    "Subtotal",
    "classify_statement",
    "is_statement_header",
    "step",
]
