# ruff: noqa: I001
"""CLI for the ``club_ledger`` package.

Two Typer commands wrap :mod:`club_ledger.api`:

- ``club-ledger import --type <expenses|income|customers|invoices> --file <csv>``
  imports one generic QuickBooks list export;
- ``club-ledger import-reports`` imports the QuickBooks report bundle
  (contact list, sales by customer detail, customer balance summary).

Environment variables (``DATABASE_URL``, ``LEDGER_DB_PASSWORD``,
``CLUB_LEDGER_CONFIG``, ``CLUB_LEDGER_LOG_LEVEL``) are loaded from a local
``.env`` by the root callback without overriding the real environment. Fatal
startup problems print ``Error: ...`` to stderr and exit 1; a run that
finishes exits 1 when any row failed and 0 otherwise.
"""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .logging_setup import configure_logging

PASSWORD_ENV = "LEDGER_DB_PASSWORD"
_RULE = "=" * 60


# ---- Module-level option objects; defaults live on the parameters -------------

TYPE_OPTION: OptionInfo = typer.Option(
    ...,
    "--type",
    help="Export type: expenses, income, customers or invoices.",
)
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to the QuickBooks CSV export.",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
SEASON_OPTION: OptionInfo = typer.Option(
    "--season", help="Season label, e.g. 2025-2026 (defaults to the configured season)."
)
DRY_RUN_OPTION: OptionInfo = typer.Option(
    "--dry-run", help="Validate and log every row without writing anything."
)
IMPORTS_DIR_OPTION: OptionInfo = typer.Option(
    "--imports-dir",
    help="Directory holding the QuickBooks report exports.",
    file_okay=False,
    dir_okay=True,
    exists=False,
)
PLAYERS_ONLY_OPTION: OptionInfo = typer.Option(
    "--players-only", help="Import players from the contact list only."
)
FINANCES_ONLY_OPTION: OptionInfo = typer.Option(
    "--finances-only", help="Import finances and invoice income only."
)
SPONSORS_ONLY_OPTION: OptionInfo = typer.Option(
    "--sponsors-only", help="Import sponsors from the contact list only."
)
CONTACTS_FILE_OPTION: OptionInfo = typer.Option(
    "--contacts-file", help="Explicit Customer Contact List report path."
)
SALES_FILE_OPTION: OptionInfo = typer.Option(
    "--sales-file", help="Explicit Sales by Customer Detail report path."
)
BALANCES_FILE_OPTION: OptionInfo = typer.Option(
    "--balances-file", help="Explicit Customer Balance Summary report path."
)


# ---- Small helpers ------------------------------------------------------------


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=1)


def _mode_label(dry_run: bool) -> str:
    return "DRY RUN (no changes will be made)" if dry_run else "LIVE"


def _password() -> str:
    """Credential for LIVE runs: the environment first, else a hidden prompt."""

    value = os.getenv(PASSWORD_ENV)
    if value is not None:
        return value
    return typer.prompt(
        "Ledger database password", hide_input=True, default="", show_default=False
    )


def _print_banner(title: str, lines: list[tuple[str, str]]) -> None:
    typer.echo(_RULE)
    typer.echo(title)
    typer.echo(_RULE)
    for label, value in lines:
        typer.echo(f"{label + ':':<8}{value}")
    typer.echo(_RULE)
    typer.echo("")


def _print_summary(lines: list[tuple[str, object]], errors: list[str], *, dry_run: bool) -> None:
    typer.echo("")
    typer.echo(_RULE)
    typer.echo("IMPORT SUMMARY")
    typer.echo(_RULE)
    for label, value in lines:
        typer.echo(f"{label + ':':<13}{value}")
    typer.echo(_RULE)

    if errors:
        typer.echo("")
        typer.echo("ERRORS:")
        for e in errors:
            typer.echo(f"  - {e}")

    if dry_run:
        typer.echo("")
        typer.echo("This was a dry run. No data was written.")
        typer.echo("Run again without --dry-run to perform the import.")


def _load_config():
    from .config import ConfigError, load_config

    try:
        return load_config()
    except ConfigError as e:
        raise _fail(str(e)) from e


def _open_store(dry_run: bool):
    if dry_run:
        return None

    from .api import LedgerAuthError, open_store

    try:
        return open_store(password=_password() or None)
    except LedgerAuthError as e:
        raise _fail(str(e)) from e


# ---- Typer-based console interface ----------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import QuickBooks exports into the club ledger. "
        "Loads DATABASE_URL and LEDGER_DB_PASSWORD from a local .env before running."
    ),
)


@app.command("import")
def import_cmd(
    import_type: Annotated[str, TYPE_OPTION],
    file: Annotated[Path, FILE_OPTION],
    *,
    season: Annotated[str | None, SEASON_OPTION] = None,
    dry_run: Annotated[bool, DRY_RUN_OPTION] = False,
) -> None:
    """Import one generic QuickBooks list export."""

    # Deferred imports keep --help fast
    from .api import VALID_TYPES, ImportFileError, read_export, run_import
    from .executor import ImportMode

    import_type = import_type.strip().lower()
    if import_type not in VALID_TYPES:
        raise _fail(
            f"Invalid --type {import_type!r}. Must be one of: {', '.join(VALID_TYPES)}"
        )

    config = _load_config()
    effective_season = season or config.season

    _print_banner(
        "QuickBooks CSV Import",
        [
            ("Type", import_type),
            ("File", str(file)),
            ("Season", effective_season),
            ("Mode", _mode_label(dry_run)),
        ],
    )

    try:
        export = read_export(file)
    except ImportFileError as e:
        raise _fail(str(e)) from e

    typer.echo(f"Found {len(export.records)} data row(s)")
    if export.columns:
        typer.echo(f"Detected columns: {', '.join(export.columns)}")
    typer.echo("")

    store = _open_store(dry_run)
    mode = ImportMode.DRY_RUN if dry_run else ImportMode.LIVE

    t0 = time.perf_counter()
    result = run_import(
        import_type, export, mode=mode, config=config, store=store, season=effective_season
    )
    elapsed = time.perf_counter() - t0

    _print_summary(
        [
            ("Type", import_type),
            ("Mode", "DRY RUN" if dry_run else "LIVE"),
            ("Total rows", result.total),
            ("Imported", result.imported),
            ("Skipped", result.skipped),
            ("Errors", len(result.errors)),
            ("Time", f"{elapsed:.2f}s"),
        ],
        result.errors,
        dry_run=dry_run,
    )
    raise typer.Exit(code=1 if result.errors else 0)


@app.command("import-reports")
def import_reports_cmd(
    *,
    imports_dir: Annotated[Path, IMPORTS_DIR_OPTION] = Path("imports"),
    season: Annotated[str | None, SEASON_OPTION] = None,
    dry_run: Annotated[bool, DRY_RUN_OPTION] = False,
    players_only: Annotated[bool, PLAYERS_ONLY_OPTION] = False,
    finances_only: Annotated[bool, FINANCES_ONLY_OPTION] = False,
    sponsors_only: Annotated[bool, SPONSORS_ONLY_OPTION] = False,
    contacts_file: Annotated[Path | None, CONTACTS_FILE_OPTION] = None,
    sales_file: Annotated[Path | None, SALES_FILE_OPTION] = None,
    balances_file: Annotated[Path | None, BALANCES_FILE_OPTION] = None,
) -> None:
    """Import players, finances and sponsors from the QuickBooks report bundle."""

    from .api import ImportFileError, ReportSections, locate_reports, run_report_import
    from .executor import ImportMode, ImportResult

    chosen = [
        name
        for name, flag in (
            ("players", players_only),
            ("finances", finances_only),
            ("sponsors", sponsors_only),
        )
        if flag
    ]
    if len(chosen) > 1:
        raise _fail("--players-only, --finances-only and --sponsors-only are mutually exclusive")
    sections = ReportSections.only(chosen[0] if chosen else None)

    config = _load_config()
    effective_season = season or config.season

    try:
        files = locate_reports(
            imports_dir,
            sections,
            contacts=contacts_file,
            sales=sales_file,
            balances=balances_file,
        )
    except ImportFileError as e:
        raise _fail(str(e)) from e

    banner = [("Season", effective_season), ("Mode", _mode_label(dry_run))]
    for label, path in (
        ("Contacts", files.contacts),
        ("Sales", files.sales),
        ("Balances", files.balances),
    ):
        if path is not None:
            banner.append((label, str(path)))
    _print_banner("QuickBooks Report Import", banner)

    store = _open_store(dry_run)
    mode = ImportMode.DRY_RUN if dry_run else ImportMode.LIVE

    t0 = time.perf_counter()
    try:
        results = run_report_import(
            files,
            sections,
            mode=mode,
            config=config,
            store=store,
            season=effective_season,
        )
    except ImportFileError as e:
        raise _fail(str(e)) from e
    elapsed = time.perf_counter() - t0

    totals = ImportResult()
    for r in results.values():
        totals.extend(r)

    lines: list[tuple[str, object]] = [("Mode", "DRY RUN" if dry_run else "LIVE")]
    for name, r in results.items():
        lines.append((name.capitalize(), f"{r.imported} imported, {r.skipped} skipped"))
    lines += [
        ("Errors", len(totals.errors)),
        ("Time", f"{elapsed:.2f}s"),
    ]
    _print_summary(lines, totals.errors, dry_run=dry_run)
    raise typer.Exit(code=1 if totals.errors else 0)


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m club_ledger.cli`
    app()
