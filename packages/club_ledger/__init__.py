"""Public interface for the ``club_ledger`` package.

This module exposes the import API, the executor types and the ledger
document models as the stable import surface. There is no runtime logic
here, only symbol re-exports.
"""

from .api import (
    VALID_TYPES,
    ExportFile,
    ImportFileError,
    LedgerAuthError,
    ReportFiles,
    ReportSections,
    locate_reports,
    open_store,
    read_export,
    run_import,
    run_report_import,
)
from .config import ConfigError, LedgerConfig, load_config
from .executor import ImportMode, ImportResult, apply
from .models import (
    Charge,
    ExpenseRecord,
    FeeBuckets,
    FinancePatch,
    FinanceRecord,
    FinanceStatus,
    IncomeRecord,
    Payment,
    PlayerRecord,
    SponsorRecord,
)
from .persistence import LedgerStore, SqlLedgerStore

__all__ = [
    # API
    "VALID_TYPES",
    "read_export",
    "run_import",
    "locate_reports",
    "run_report_import",
    "open_store",
    "apply",
    "ExportFile",
    "ReportFiles",
    "ReportSections",
    "ImportMode",
    "ImportResult",
    # Errors
    "ImportFileError",
    "LedgerAuthError",
    "ConfigError",
    # Configuration
    "LedgerConfig",
    "load_config",
    # Store
    "LedgerStore",
    "SqlLedgerStore",
    # Models / types
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
