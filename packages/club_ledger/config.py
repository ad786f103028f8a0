"""Runtime configuration for ``club_ledger``.

Connection settings and credentials come only from the environment
(``DATABASE_URL``, ``LEDGER_DB_PASSWORD``); the CLI loads a local ``.env``
first. Everything else that a deployment may want to tune (the season, the
non-person denylist, the synonym tables) lives in :class:`LedgerConfig`, which
is read from the JSON file named by ``CLUB_LEDGER_CONFIG`` when set.

An invalid config file is fatal: :func:`load_config` raises
:class:`ConfigError` and the CLI exits non-zero before touching any input.
"""

from __future__ import annotations

import json
import os
from os import PathLike
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .mapping import (
    EXPENSE_CATEGORY_SYNONYMS,
    FEE_BUCKET_SYNONYMS,
    INCOME_CATEGORY_SYNONYMS,
    PAYMENT_METHOD_SYNONYMS,
    ExpenseCategory,
    FeeBucket,
    IncomeCategory,
    PaymentMethod,
    SynonymMapper,
)
from .names import DEFAULT_DENYLIST, DEFAULT_SAMPLE_NAMES, NameMatcher

CONFIG_ENV = "CLUB_LEDGER_CONFIG"
DEFAULT_SEASON = "2025-2026"
DEFAULT_RECORDED_BY = "quickbooks-import"


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


def _pairs[E](table: tuple[tuple[str, E], ...]) -> dict[str, E]:
    out: dict[str, E] = {}
    for k, v in table:
        out.setdefault(k, v)
    return out


class LedgerConfig(BaseModel):
    """Per-deployment settings.

    Synonym tables are JSON objects mapping a lowercase synonym to a canonical
    value; object key order is the substring-scan order. Values are validated
    against their enumeration, so a typo in a config file fails at startup
    rather than producing an unknown category.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    season: str = DEFAULT_SEASON
    recorded_by: str = DEFAULT_RECORDED_BY
    progress_every: int = 10
    denylist: tuple[str, ...] = DEFAULT_DENYLIST
    sample_names: tuple[str, ...] = DEFAULT_SAMPLE_NAMES
    expense_categories: dict[str, ExpenseCategory] = Field(
        default_factory=lambda: _pairs(EXPENSE_CATEGORY_SYNONYMS)
    )
    income_categories: dict[str, IncomeCategory] = Field(
        default_factory=lambda: _pairs(INCOME_CATEGORY_SYNONYMS)
    )
    payment_methods: dict[str, PaymentMethod] = Field(
        default_factory=lambda: _pairs(PAYMENT_METHOD_SYNONYMS)
    )
    fee_buckets: dict[str, FeeBucket] = Field(
        default_factory=lambda: _pairs(FEE_BUCKET_SYNONYMS)
    )

    @field_validator("season", "recorded_by")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must be non-empty")
        return v

    @field_validator("progress_every")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("progress_every must be a positive integer")
        return v

    @field_validator("expense_categories", "income_categories", "payment_methods", "fee_buckets")
    @classmethod
    def _lowercase_keys(cls, v: dict[str, object]) -> dict[str, object]:
        return {k.strip().lower(): val for k, val in v.items() if k.strip()}

    # ---- Builders --------------------------------------------------------

    def name_matcher(self) -> NameMatcher:
        return NameMatcher.from_names(self.denylist, self.sample_names)

    def expense_mapper(self) -> SynonymMapper[ExpenseCategory]:
        return SynonymMapper.from_pairs(self.expense_categories.items(), ExpenseCategory.OTHER)

    def income_mapper(self) -> SynonymMapper[IncomeCategory]:
        return SynonymMapper.from_pairs(self.income_categories.items(), IncomeCategory.OTHER)

    def payment_mapper(self) -> SynonymMapper[PaymentMethod]:
        return SynonymMapper.from_pairs(self.payment_methods.items(), PaymentMethod.OTHER)

    def bucket_mapper(self) -> SynonymMapper[FeeBucket]:
        return SynonymMapper.from_pairs(self.fee_buckets.items(), FeeBucket.OTHER)


def load_config(path: str | PathLike[str] | None = None) -> LedgerConfig:
    """Load :class:`LedgerConfig` from ``path`` or ``$CLUB_LEDGER_CONFIG``.

    Returns the defaults when neither is set.
    """

    raw_path = path if path is not None else os.getenv(CONFIG_ENV)
    if not raw_path:
        return LedgerConfig()

    p = Path(raw_path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config file {p}: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"config file {p} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file {p} must contain a JSON object")
    try:
        return LedgerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config file {p}: {e}") from e


__all__ = [
    "CONFIG_ENV",
    "ConfigError",
    "DEFAULT_RECORDED_BY",
    "DEFAULT_SEASON",
    "LedgerConfig",
    "load_config",
]
