from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from club_ledger import logging_setup
from club_ledger.cli import app
from tests.helpers.db import documents

runner = CliRunner()

_EXPENSES = (
    "Date,Vendor,Category,Amount,Payment Method,Check #,Memo\n"
    "3/1/2025,City Parks,Field Rental,-150.00,Check,1042,Spring field\n"
    "3/9/2025,Bat Shop,Equipment,89.99,Credit Card,,Practice balls\n"
)


@pytest.fixture(autouse=True)
def _fresh_logging(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    # Each invocation configures logging against the runner's own stdout
    pkg = logging.getLogger("club_ledger")
    handlers, propagate = list(pkg.handlers), pkg.propagate
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    # Keep any developer .env out of the run
    monkeypatch.chdir(tmp_path)
    yield
    pkg.handlers[:] = handlers
    pkg.propagate = propagate


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_import_rejects_unknown_type(tmp_path: Path):
    csv_path = _write(tmp_path / "x.csv", _EXPENSES)
    result = runner.invoke(app, ["import", "--type", "bills", "--file", str(csv_path), "--dry-run"])
    assert result.exit_code == 1
    assert "Invalid --type 'bills'" in result.output


def test_import_missing_file_exits_1(tmp_path: Path):
    missing = tmp_path / "nope.csv"
    result = runner.invoke(app, ["import", "--type", "expenses", "--file", str(missing), "--dry-run"])
    assert result.exit_code == 1
    assert "Error: File not found" in result.output


def test_import_dry_run_clean(tmp_path: Path):
    csv_path = _write(tmp_path / "expenses.csv", _EXPENSES)
    result = runner.invoke(
        app, ["import", "--type", "Expenses", "--file", str(csv_path), "--dry-run"]
    )

    assert result.exit_code == 0, result.output
    out = result.output
    assert "QuickBooks CSV Import" in out
    assert "Found 2 data row(s)" in out
    assert "Detected columns: Date, Vendor, Category, Amount" in out
    assert "[DRY RUN] Row 2: 3/1/2025 | City Parks | facilities | $150.00" in out
    assert "Imported:    2" in out
    assert "This was a dry run. No data was written." in out


def test_import_dry_run_with_row_error_exits_1(tmp_path: Path):
    csv_path = _write(tmp_path / "expenses.csv", _EXPENSES + "someday,Acme,Insurance,10,,,\n")
    result = runner.invoke(app, ["import", "--type", "expenses", "--file", str(csv_path), "--dry-run"])

    assert result.exit_code == 1
    assert "ERRORS:" in result.output
    assert '  - Row 4: Invalid or missing date "someday"' in result.output


def test_import_live_without_database_url_exits_1(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    csv_path = _write(tmp_path / "expenses.csv", _EXPENSES)
    monkeypatch.setenv("LEDGER_DB_PASSWORD", "")
    result = runner.invoke(app, ["import", "--type", "expenses", "--file", str(csv_path)])
    assert result.exit_code == 1
    assert "Failed to sign in to the ledger store" in result.output


def test_import_live_writes_to_database(tmp_path: Path, ledger_db: str, monkeypatch):
    csv_path = _write(tmp_path / "expenses.csv", _EXPENSES)
    monkeypatch.setenv("DATABASE_URL", ledger_db)
    monkeypatch.setenv("LEDGER_DB_PASSWORD", "")

    result = runner.invoke(app, ["import", "--type", "expenses", "--file", str(csv_path)])

    assert result.exit_code == 0, result.output
    assert len(documents(ledger_db, "expenses")) == 2


def test_import_reports_only_flags_are_exclusive(tmp_path: Path):
    result = runner.invoke(
        app, ["import-reports", "--players-only", "--sponsors-only", "--dry-run"]
    )
    assert result.exit_code == 1
    assert "mutually exclusive" in result.output


def test_import_reports_missing_directory_exits_1(tmp_path: Path):
    result = runner.invoke(
        app, ["import-reports", "--imports-dir", str(tmp_path / "missing"), "--dry-run"]
    )
    assert result.exit_code == 1
    assert "Imports directory not found" in result.output


def test_import_reports_players_only_needs_just_the_contact_list(tmp_path: Path):
    contacts = _write(
        tmp_path / "contacts.csv",
        "Customer Contact List\n\nCustomer full name,Email\nJane Doe,jane@example.com\n",
    )
    result = runner.invoke(
        app,
        ["import-reports", "--players-only", "--contacts-file", str(contacts), "--dry-run"],
    )

    assert result.exit_code == 0, result.output
    assert "QuickBooks Report Import" in result.output
    assert "Players:" in result.output
    assert "1 imported, 0 skipped" in result.output
