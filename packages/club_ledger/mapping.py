"""Free-text to closed-vocabulary mapping for categories and payment methods.

Exports carry categories, account names and payment methods typed by people
over years, so mapping must never fail an import. ``SynonymMapper`` applies a
deterministic two-phase rule:

1. lowercase and trim the input, then look it up exactly in the table;
2. otherwise scan the table in declaration order and return the first entry
   whose key is contained in the input or contains the input;
3. otherwise return the fallback (``other`` for every default table).

Tables are immutable tuples of ``(synonym, value)`` pairs. The defaults below
cover common QuickBooks account names; deployments override them through
:class:`club_ledger.config.LedgerConfig`.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum


class ExpenseCategory(StrEnum):
    FACILITIES = "facilities"
    EQUIPMENT = "equipment"
    UNIFORMS = "uniforms"
    TOURNAMENTS = "tournaments"
    TRAVEL = "travel"
    INSURANCE = "insurance"
    LEAGUE_FEES = "league_fees"
    COACHING = "coaching"
    ADMINISTRATIVE = "administrative"
    MARKETING = "marketing"
    FUNDRAISING = "fundraising"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class IncomeCategory(StrEnum):
    PLAYER_PAYMENTS = "player_payments"
    SPONSORSHIPS = "sponsorships"
    FUNDRAISERS = "fundraisers"
    DONATIONS = "donations"
    GRANTS = "grants"
    MERCHANDISE = "merchandise"
    CONCESSIONS = "concessions"
    OTHER = "other"


class PaymentMethod(StrEnum):
    CASH = "cash"
    CHECK = "check"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    VENMO = "venmo"
    ZELLE = "zelle"
    OTHER = "other"


class FeeBucket(StrEnum):
    REGISTRATION = "registration"
    UNIFORM = "uniform"
    TOURNAMENT = "tournament"
    FACILITY = "facility"
    EQUIPMENT = "equipment"
    OTHER = "other"


@dataclass(frozen=True)
class SynonymMapper[T]:
    """Exact-then-substring synonym lookup with a guaranteed fallback."""

    table: tuple[tuple[str, T], ...]
    fallback: T
    _exact: dict[str, T] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        exact: dict[str, T] = {}
        for key, value in self.table:
            # First declaration wins, matching the scan order below
            exact.setdefault(key.strip().lower(), value)
        object.__setattr__(self, "_exact", exact)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, T]], fallback: T) -> SynonymMapper[T]:
        return cls(table=tuple((k.strip().lower(), v) for k, v in pairs), fallback=fallback)

    def map(self, raw: str | None) -> T:
        if raw is None:
            return self.fallback
        key = raw.strip().lower()
        if not key:
            return self.fallback
        hit = self._exact.get(key)
        if hit is not None:
            return hit
        for syn, value in self.table:
            if syn in key or key in syn:
                return value
        return self.fallback


# ---------------------------------------------------------------------------
# Default tables (declaration order is the substring scan order)
# ---------------------------------------------------------------------------

_E = ExpenseCategory
EXPENSE_CATEGORY_SYNONYMS: tuple[tuple[str, ExpenseCategory], ...] = (
    # Facilities
    ("rent", _E.FACILITIES),
    ("rent or lease", _E.FACILITIES),
    ("rent expense", _E.FACILITIES),
    ("facility rental", _E.FACILITIES),
    ("facility", _E.FACILITIES),
    ("facilities", _E.FACILITIES),
    ("field rental", _E.FACILITIES),
    ("indoor facility", _E.FACILITIES),
    ("gym rental", _E.FACILITIES),
    ("venue rental", _E.FACILITIES),
    ("venue", _E.FACILITIES),
    # Equipment
    ("equipment", _E.EQUIPMENT),
    ("equipment rental", _E.EQUIPMENT),
    ("supplies", _E.EQUIPMENT),
    ("sporting goods", _E.EQUIPMENT),
    ("bats", _E.EQUIPMENT),
    ("balls", _E.EQUIPMENT),
    ("gear", _E.EQUIPMENT),
    ("equipment & supplies", _E.EQUIPMENT),
    # Uniforms
    ("uniforms", _E.UNIFORMS),
    ("uniform", _E.UNIFORMS),
    ("jerseys", _E.UNIFORMS),
    ("apparel", _E.UNIFORMS),
    ("clothing", _E.UNIFORMS),
    ("team apparel", _E.UNIFORMS),
    # Tournaments
    ("tournaments", _E.TOURNAMENTS),
    ("tournament", _E.TOURNAMENTS),
    ("tournament entry", _E.TOURNAMENTS),
    ("tournament fees", _E.TOURNAMENTS),
    ("entry fees", _E.TOURNAMENTS),
    ("registration", _E.TOURNAMENTS),
    ("tournament registration", _E.TOURNAMENTS),
    # Travel
    ("travel", _E.TRAVEL),
    ("travel expense", _E.TRAVEL),
    ("mileage", _E.TRAVEL),
    ("gas", _E.TRAVEL),
    ("fuel", _E.TRAVEL),
    ("transportation", _E.TRAVEL),
    ("hotel", _E.TRAVEL),
    ("lodging", _E.TRAVEL),
    ("meals & travel", _E.TRAVEL),
    # Insurance
    ("insurance", _E.INSURANCE),
    ("insurance expense", _E.INSURANCE),
    ("liability insurance", _E.INSURANCE),
    ("player insurance", _E.INSURANCE),
    # League fees
    ("league fees", _E.LEAGUE_FEES),
    ("league", _E.LEAGUE_FEES),
    ("league dues", _E.LEAGUE_FEES),
    ("membership", _E.LEAGUE_FEES),
    ("membership dues", _E.LEAGUE_FEES),
    ("association fees", _E.LEAGUE_FEES),
    ("usssa", _E.LEAGUE_FEES),
    ("asa", _E.LEAGUE_FEES),
    ("usa softball", _E.LEAGUE_FEES),
    # Coaching
    ("coaching", _E.COACHING),
    ("coach", _E.COACHING),
    ("coaching fees", _E.COACHING),
    ("coaching expense", _E.COACHING),
    ("instruction", _E.COACHING),
    ("lessons", _E.COACHING),
    ("training", _E.COACHING),
    ("clinics", _E.COACHING),
    ("pitching lessons", _E.COACHING),
    ("hitting lessons", _E.COACHING),
    ("private lessons", _E.COACHING),
    ("contract labor", _E.COACHING),
    ("contractors", _E.COACHING),
    # Administrative
    ("administrative", _E.ADMINISTRATIVE),
    ("admin", _E.ADMINISTRATIVE),
    ("office supplies", _E.ADMINISTRATIVE),
    ("office expense", _E.ADMINISTRATIVE),
    ("postage", _E.ADMINISTRATIVE),
    ("printing", _E.ADMINISTRATIVE),
    ("bank charges", _E.ADMINISTRATIVE),
    ("bank fees", _E.ADMINISTRATIVE),
    ("service charges", _E.ADMINISTRATIVE),
    ("fees", _E.ADMINISTRATIVE),
    ("professional fees", _E.ADMINISTRATIVE),
    ("accounting", _E.ADMINISTRATIVE),
    ("legal", _E.ADMINISTRATIVE),
    ("taxes", _E.ADMINISTRATIVE),
    ("licenses", _E.ADMINISTRATIVE),
    ("software", _E.ADMINISTRATIVE),
    ("website", _E.ADMINISTRATIVE),
    ("technology", _E.ADMINISTRATIVE),
    # Marketing
    ("marketing", _E.MARKETING),
    ("advertising", _E.MARKETING),
    ("promotion", _E.MARKETING),
    ("promotions", _E.MARKETING),
    ("sponsorship expense", _E.MARKETING),
    ("signage", _E.MARKETING),
    ("banners", _E.MARKETING),
    # Fundraising
    ("fundraising", _E.FUNDRAISING),
    ("fundraising expense", _E.FUNDRAISING),
    ("event expense", _E.FUNDRAISING),
    ("raffle", _E.FUNDRAISING),
    ("auction", _E.FUNDRAISING),
    # Maintenance
    ("maintenance", _E.MAINTENANCE),
    ("repairs", _E.MAINTENANCE),
    ("repair", _E.MAINTENANCE),
    ("maintenance & repair", _E.MAINTENANCE),
    ("field maintenance", _E.MAINTENANCE),
    ("upkeep", _E.MAINTENANCE),
)

_I = IncomeCategory
INCOME_CATEGORY_SYNONYMS: tuple[tuple[str, IncomeCategory], ...] = (
    # Player payments
    ("player payments", _I.PLAYER_PAYMENTS),
    ("player payment", _I.PLAYER_PAYMENTS),
    ("registration fees", _I.PLAYER_PAYMENTS),
    ("registration income", _I.PLAYER_PAYMENTS),
    ("registration", _I.PLAYER_PAYMENTS),
    ("player fees", _I.PLAYER_PAYMENTS),
    ("team fees", _I.PLAYER_PAYMENTS),
    ("dues", _I.PLAYER_PAYMENTS),
    ("membership dues", _I.PLAYER_PAYMENTS),
    ("tuition", _I.PLAYER_PAYMENTS),
    ("services", _I.PLAYER_PAYMENTS),
    ("services/fee income", _I.PLAYER_PAYMENTS),
    ("fee income", _I.PLAYER_PAYMENTS),
    ("sales", _I.PLAYER_PAYMENTS),
    # Sponsorships
    ("sponsorships", _I.SPONSORSHIPS),
    ("sponsorship", _I.SPONSORSHIPS),
    ("sponsor income", _I.SPONSORSHIPS),
    ("sponsor", _I.SPONSORSHIPS),
    ("corporate sponsorship", _I.SPONSORSHIPS),
    ("advertising income", _I.SPONSORSHIPS),
    # Fundraisers
    ("fundraisers", _I.FUNDRAISERS),
    ("fundraiser", _I.FUNDRAISERS),
    ("fundraising", _I.FUNDRAISERS),
    ("fundraising income", _I.FUNDRAISERS),
    ("event income", _I.FUNDRAISERS),
    ("raffle income", _I.FUNDRAISERS),
    ("auction income", _I.FUNDRAISERS),
    ("car wash", _I.FUNDRAISERS),
    # Donations
    ("donations", _I.DONATIONS),
    ("donation", _I.DONATIONS),
    ("contribution", _I.DONATIONS),
    ("contributions", _I.DONATIONS),
    ("gifts", _I.DONATIONS),
    ("charitable", _I.DONATIONS),
    # Grants
    ("grants", _I.GRANTS),
    ("grant", _I.GRANTS),
    ("grant income", _I.GRANTS),
    # Merchandise
    ("merchandise", _I.MERCHANDISE),
    ("merch", _I.MERCHANDISE),
    ("merchandise sales", _I.MERCHANDISE),
    ("product sales", _I.MERCHANDISE),
    ("apparel sales", _I.MERCHANDISE),
    ("spirit wear", _I.MERCHANDISE),
    # Concessions
    ("concessions", _I.CONCESSIONS),
    ("concession", _I.CONCESSIONS),
    ("concession sales", _I.CONCESSIONS),
    ("food sales", _I.CONCESSIONS),
    ("snack bar", _I.CONCESSIONS),
)

_P = PaymentMethod
PAYMENT_METHOD_SYNONYMS: tuple[tuple[str, PaymentMethod], ...] = (
    ("cash", _P.CASH),
    ("check", _P.CHECK),
    ("cheque", _P.CHECK),
    ("credit card", _P.CREDIT_CARD),
    ("credit", _P.CREDIT_CARD),
    ("visa", _P.CREDIT_CARD),
    ("mastercard", _P.CREDIT_CARD),
    ("amex", _P.CREDIT_CARD),
    ("american express", _P.CREDIT_CARD),
    ("debit card", _P.CREDIT_CARD),
    ("debit", _P.CREDIT_CARD),
    ("bank transfer", _P.BANK_TRANSFER),
    ("ach", _P.BANK_TRANSFER),
    ("wire", _P.BANK_TRANSFER),
    ("wire transfer", _P.BANK_TRANSFER),
    ("eft", _P.BANK_TRANSFER),
    ("electronic", _P.BANK_TRANSFER),
    ("direct deposit", _P.BANK_TRANSFER),
    ("venmo", _P.VENMO),
    ("zelle", _P.ZELLE),
    ("paypal", _P.OTHER),
    ("online", _P.OTHER),
    ("other", _P.OTHER),
)

_F = FeeBucket
FEE_BUCKET_SYNONYMS: tuple[tuple[str, FeeBucket], ...] = (
    ("acceptance fee", _F.REGISTRATION),
    ("registration", _F.REGISTRATION),
    ("registration fee", _F.REGISTRATION),
    ("first installment", _F.OTHER),
    ("second installment", _F.OTHER),
    ("final installment", _F.OTHER),
    ("installment", _F.OTHER),
    ("uniform", _F.UNIFORM),
    ("uniforms", _F.UNIFORM),
    ("jersey", _F.UNIFORM),
    ("tournament", _F.TOURNAMENT),
    ("tournament fee", _F.TOURNAMENT),
    ("entry fee", _F.TOURNAMENT),
    ("facility", _F.FACILITY),
    ("facility fee", _F.FACILITY),
    ("field rental", _F.FACILITY),
    ("equipment", _F.EQUIPMENT),
    ("equipment fee", _F.EQUIPMENT),
)


def expense_category_mapper(
    table: Iterable[tuple[str, ExpenseCategory]] = EXPENSE_CATEGORY_SYNONYMS,
) -> SynonymMapper[ExpenseCategory]:
    return SynonymMapper.from_pairs(table, ExpenseCategory.OTHER)


def income_category_mapper(
    table: Iterable[tuple[str, IncomeCategory]] = INCOME_CATEGORY_SYNONYMS,
) -> SynonymMapper[IncomeCategory]:
    return SynonymMapper.from_pairs(table, IncomeCategory.OTHER)


def payment_method_mapper(
    table: Iterable[tuple[str, PaymentMethod]] = PAYMENT_METHOD_SYNONYMS,
) -> SynonymMapper[PaymentMethod]:
    return SynonymMapper.from_pairs(table, PaymentMethod.OTHER)


def fee_bucket_mapper(
    table: Iterable[tuple[str, FeeBucket]] = FEE_BUCKET_SYNONYMS,
) -> SynonymMapper[FeeBucket]:
    return SynonymMapper.from_pairs(table, FeeBucket.OTHER)


__all__ = [
    "EXPENSE_CATEGORY_SYNONYMS",
    "FEE_BUCKET_SYNONYMS",
    "INCOME_CATEGORY_SYNONYMS",
    "PAYMENT_METHOD_SYNONYMS",
    "ExpenseCategory",
    "FeeBucket",
    "IncomeCategory",
    "PaymentMethod",
    "SynonymMapper",
    "expense_category_mapper",
    "fee_bucket_mapper",
    "income_category_mapper",
    "payment_method_mapper",
]
