"""Public API and orchestration for the ``club_ledger`` package.

A run is: open the ledger store (LIVE only), read and tokenize the export,
adapt rows to canonical records, plan writes, and hand the plan to
:func:`club_ledger.executor.apply`. The CLI is a thin layer over the
functions here, which raise instead of printing:

- :class:`ImportFileError` when an input file cannot be read;
- :class:`LedgerAuthError` when the store rejects the credential or is
  unreachable at sign-in;
- :class:`ValueError` for an unknown import type.

Everything that goes wrong after that is a per-row error in the returned
:class:`~club_ledger.executor.ImportResult`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from os import PathLike
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from .config import LedgerConfig
from .executor import ImportMode, ImportResult, PlanItem, apply
from .ingest.adapters import generic_csv, qb_reports
from .ingest.tokenizer import parse_records
from .ingest.utils import ImportFileError, find_report, read_csv_text
from .logging_setup import get_logger
from .names import EntityDirectory
from .persistence import PLAYERS, LedgerStore, SqlLedgerStore
from .planning import (
    PlanContext,
    plan_customers,
    plan_expenses,
    plan_income,
    plan_invoices,
    plan_report_finances,
    plan_report_income,
    plan_report_players,
    plan_report_sponsors,
)

_logger = get_logger("club_ledger.api")

VALID_TYPES: tuple[str, ...] = ("expenses", "income", "customers", "invoices")


class LedgerAuthError(Exception):
    """The ledger store rejected the credential or could not be reached."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


def open_store(
    *, database_url: str | None = None, password: str | None = None
) -> SqlLedgerStore:
    """Sign in to the ledger store once and return it.

    Raises :class:`LedgerAuthError` when ``DATABASE_URL`` is missing, the
    credential is rejected, or the server cannot be reached.
    """

    store = SqlLedgerStore(database_url=database_url, password=password)
    try:
        store.ping()
    except (SQLAlchemyError, RuntimeError) as e:
        raise LedgerAuthError(f"Failed to sign in to the ledger store: {e}") from e
    _logger.info("Signed in to the ledger store")
    return store


def _directory(mode: ImportMode, store: LedgerStore | None) -> EntityDirectory:
    # Dry runs never read the store, so every name resolves to its slug
    if mode is ImportMode.DRY_RUN or store is None:
        return EntityDirectory()
    return EntityDirectory(store.query(PLAYERS))


def _context(
    config: LedgerConfig,
    mode: ImportMode,
    store: LedgerStore | None,
    now: datetime,
    season: str | None,
) -> PlanContext:
    return PlanContext(
        season=season or config.season,
        recorded_by=config.recorded_by,
        now=now,
        matcher=config.name_matcher(),
        directory=_directory(mode, store),
    )


# ---- Generic exports -----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExportFile:
    """A generic export read from disk: header-keyed records plus their columns."""

    path: str
    columns: tuple[str, ...]
    records: list[dict[str, str]]


def read_export(csv_path: str | PathLike[str]) -> ExportFile:
    records = parse_records(read_csv_text(csv_path))
    columns = tuple(records[0].keys()) if records else ()
    return ExportFile(path=str(csv_path), columns=columns, records=records)


def plan_export(
    import_type: str,
    records: Iterable[Mapping[str, str]],
    *,
    config: LedgerConfig,
    ctx: PlanContext,
) -> Iterable[PlanItem]:
    """Adapt and plan generic export ``records`` of ``import_type``."""

    match import_type:
        case "expenses":
            rows = generic_csv.expense_rows(
                records, categories=config.expense_mapper(), methods=config.payment_mapper()
            )
            return plan_expenses(rows, ctx)
        case "income":
            rows = generic_csv.income_rows(
                records, categories=config.income_mapper(), methods=config.payment_mapper()
            )
            return plan_income(rows, ctx)
        case "customers":
            return plan_customers(generic_csv.customer_rows(records), ctx)
        case "invoices":
            return plan_invoices(
                generic_csv.invoice_rows(records), ctx, buckets=config.bucket_mapper()
            )
        case _:
            raise ValueError(
                f"Invalid import type {import_type!r}; expected one of: {', '.join(VALID_TYPES)}"
            )


def run_import(
    import_type: str,
    export: ExportFile,
    *,
    mode: ImportMode,
    config: LedgerConfig,
    store: LedgerStore | None = None,
    season: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> ImportResult:
    """Import one generic export.

    Parameters
    ----------
    import_type:
        One of :data:`VALID_TYPES`.
    export:
        The file as returned by :func:`read_export`.
    mode:
        ``LIVE`` requires ``store``; ``DRY_RUN`` never touches it.
    config:
        Season default, denylist and synonym tables.
    season:
        Overrides ``config.season`` for this run.
    clock:
        Timestamp source for planned documents and finance merges.
    """

    if import_type not in VALID_TYPES:
        raise ValueError(
            f"Invalid import type {import_type!r}; expected one of: {', '.join(VALID_TYPES)}"
        )
    ctx = _context(config, mode, store, clock(), season)
    items = plan_export(import_type, export.records, config=config, ctx=ctx)
    return apply(
        items,
        mode,
        store,
        label=import_type,
        progress_every=config.progress_every,
        clock=clock,
    )


# ---- QuickBooks report bundle ----------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReportSections:
    """Which parts of the report bundle a run imports."""

    players: bool = True
    finances: bool = True
    sponsors: bool = True

    @classmethod
    def only(cls, name: str | None) -> ReportSections:
        if name is None:
            return cls()
        if name not in ("players", "finances", "sponsors"):
            raise ValueError(f"unknown report section {name!r}")
        return cls(**{s: s == name for s in ("players", "finances", "sponsors")})

    @property
    def needs_contacts(self) -> bool:
        return self.players or self.sponsors


@dataclass(frozen=True, slots=True)
class ReportFiles:
    contacts: Path | None = None
    sales: Path | None = None
    balances: Path | None = None


def locate_reports(
    imports_dir: str | PathLike[str],
    sections: ReportSections,
    *,
    contacts: str | PathLike[str] | None = None,
    sales: str | PathLike[str] | None = None,
    balances: str | PathLike[str] | None = None,
) -> ReportFiles:
    """Resolve the report files ``sections`` need.

    Explicit paths win; otherwise each report is found in ``imports_dir`` by
    its QuickBooks file-name suffix. Reports a run does not need are never
    looked up.
    """

    def _pick(explicit: str | PathLike[str] | None, suffix: str) -> Path:
        return Path(explicit) if explicit is not None else find_report(imports_dir, suffix)

    return ReportFiles(
        contacts=(
            _pick(contacts, qb_reports.CONTACT_LIST_SUFFIX) if sections.needs_contacts else None
        ),
        sales=_pick(sales, qb_reports.SALES_DETAIL_SUFFIX) if sections.finances else None,
        balances=(
            _pick(balances, qb_reports.BALANCE_SUMMARY_SUFFIX) if sections.finances else None
        ),
    )


def run_report_import(
    files: ReportFiles,
    sections: ReportSections,
    *,
    mode: ImportMode,
    config: LedgerConfig,
    store: LedgerStore | None = None,
    season: str | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> dict[str, ImportResult]:
    """Import the QuickBooks report bundle, section by section.

    Sections run in the order players, finances (followed by one income line
    per invoice detail), sponsors. Every needed file is read and parsed
    before anything is written, so an unreadable report aborts the run
    without a partial import.

    Returns one :class:`ImportResult` per executed step, keyed ``players``,
    ``finances``, ``income`` and ``sponsors``.
    """

    matcher = config.name_matcher()
    contacts: list[qb_reports.ContactRow] = []
    if sections.needs_contacts:
        if files.contacts is None:
            raise ImportFileError("Customer Contact List report is required")
        contacts = qb_reports.parse_contact_list(read_csv_text(files.contacts))
        _logger.info("Found %d contacts", len(contacts))

    statement = None
    balances: dict[str, Decimal] = {}
    if sections.finances:
        if files.sales is None or files.balances is None:
            raise ImportFileError(
                "Sales by Customer Detail and Customer Balance Summary reports are required"
            )
        statement = qb_reports.parse_sales_detail(
            read_csv_text(files.sales), matcher=matcher, buckets=config.bucket_mapper()
        )
        balances = qb_reports.parse_balance_summary(read_csv_text(files.balances))
        _logger.info(
            "Found %d customers with invoices and %d customer balances",
            len(statement.statements),
            len(balances),
        )

    results: dict[str, ImportResult] = {}

    def _run(label: str, items: Iterable[PlanItem]) -> None:
        _logger.info("Importing %s...", label)
        results[label] = apply(
            items,
            mode,
            store,
            label=label,
            progress_every=config.progress_every,
            clock=clock,
        )

    if sections.players:
        _run("players", plan_report_players(contacts, _context(config, mode, store, clock(), season)))

    if statement is not None:
        # Fresh directory so players imported above resolve to their stored ids
        ctx = _context(config, mode, store, clock(), season)
        _run(
            "finances",
            plan_report_finances(statement.statements, balances, ctx, issues=statement.issues),
        )
        _run("income", plan_report_income(statement.statements, ctx))

    if sections.sponsors:
        _run("sponsors", plan_report_sponsors(contacts, _context(config, mode, store, clock(), season)))

    return results


__all__ = [
    "ExportFile",
    "ImportFileError",
    "LedgerAuthError",
    "ReportFiles",
    "ReportSections",
    "VALID_TYPES",
    "locate_reports",
    "open_store",
    "plan_export",
    "read_export",
    "run_import",
    "run_report_import",
]
