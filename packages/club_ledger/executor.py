"""Apply planned ledger writes, or log them in dry-run mode.

Importers turn source rows into a sequence of :class:`PlannedRecord` (the
writes one source record produces) and :class:`RowError` (a row that could
not be planned). :func:`apply` walks that sequence strictly in order:

- ``DRY_RUN`` validates every record (finance patches are merged against an
  empty record) and logs ``[DRY RUN] Row N: ...``. The store is never
  touched, not even for reads.
- ``LIVE`` runs the same validation, then performs each write sequentially
  under its deterministic key. Finance upserts read the stored record, merge
  the patch and write the result back. Any exception fails that record
  only; the batch continues.

Progress is logged every ``progress_every`` records and on the last one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from .logging_setup import get_logger
from .models import FinancePatch, FinanceRecord
from .persistence import PLAYER_FINANCES, LedgerStore
from .projector import merge_finance

_logger = get_logger("club_ledger.executor")


class ImportMode(StrEnum):
    LIVE = "live"
    DRY_RUN = "dry_run"


@dataclass(frozen=True, slots=True)
class DocumentWrite:
    """Write ``document`` under ``(collection, key)``.

    Fields named in ``preserve`` keep their stored value when the document
    already exists (first-import timestamps, app-edited settings).
    """

    collection: str
    key: str
    document: Mapping[str, Any]
    merge: bool = False
    preserve: tuple[str, ...] = ("createdAt",)


@dataclass(frozen=True, slots=True)
class FinanceUpsert:
    key: str
    patch: FinancePatch


type LedgerWrite = DocumentWrite | FinanceUpsert


@dataclass(frozen=True, slots=True)
class PlannedRecord:
    row_number: int
    summary: str
    writes: tuple[LedgerWrite, ...]


@dataclass(frozen=True, slots=True)
class RowError:
    row_number: int
    message: str


@dataclass(frozen=True, slots=True)
class SkippedRow:
    """A row left out by policy (e.g. a sample customer); not an error."""

    row_number: int
    reason: str


type PlanItem = PlannedRecord | RowError | SkippedRow


@dataclass(slots=True)
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    total: int = 0

    def extend(self, other: ImportResult) -> None:
        self.imported += other.imported
        self.skipped += other.skipped
        self.errors.extend(other.errors)
        self.total += other.total


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---- Write application -------------------------------------------------------


def _apply_document(store: LedgerStore, w: DocumentWrite) -> None:
    document = dict(w.document)
    if w.preserve:
        existing = store.get(w.collection, w.key)
        if existing:
            for name in w.preserve:
                if name in existing:
                    document[name] = existing[name]
    store.set(w.collection, w.key, document, merge=w.merge)


def _apply_finance(store: LedgerStore, w: FinanceUpsert, now: datetime) -> FinanceRecord:
    stored = store.get(PLAYER_FINANCES, w.key)
    existing = FinanceRecord.from_document(stored) if stored else None
    merged = merge_finance(existing, w.patch, now)
    # Merge keeps fields the web application owns (team, scholarship, ...)
    store.set(PLAYER_FINANCES, w.key, merged.to_document(), merge=True)
    return merged


def _validate(record: PlannedRecord, now: datetime) -> None:
    for w in record.writes:
        if isinstance(w, FinanceUpsert):
            if not w.key or not w.patch.entity_id:
                raise ValueError(f"empty document key for collection {PLAYER_FINANCES!r}")
            merge_finance(None, w.patch, now)
        elif not w.key:
            raise ValueError(f"empty document key for collection {w.collection!r}")


def apply(
    records: Iterable[PlanItem],
    mode: ImportMode,
    store: LedgerStore | None = None,
    *,
    label: str = "records",
    progress_every: int = 10,
    clock: Callable[[], datetime] = _utcnow,
) -> ImportResult:
    """Apply ``records`` in order and return counts plus ``Row N: ...`` errors.

    Parameters
    ----------
    records:
        Planned records and row errors in source order.
    mode:
        ``LIVE`` writes to ``store``; ``DRY_RUN`` never touches it.
    store:
        Required in ``LIVE`` mode.
    label:
        Noun used in progress lines, e.g. ``expenses``.
    progress_every:
        Log a progress line every this many records (and on the last one).
    clock:
        Source of ``createdAt``/``updatedAt`` timestamps.
    """

    if mode is ImportMode.LIVE and store is None:
        raise ValueError("a ledger store is required in LIVE mode")

    items = list(records)
    result = ImportResult(total=len(items))

    for i, item in enumerate(items, start=1):
        if isinstance(item, RowError):
            result.errors.append(f"Row {item.row_number}: {item.message}")
            result.skipped += 1
        elif isinstance(item, SkippedRow):
            _logger.info("  Row %d: skipped (%s)", item.row_number, item.reason)
            result.skipped += 1
        else:
            now = clock()
            try:
                _validate(item, now)
                if mode is ImportMode.DRY_RUN:
                    _logger.info("  [DRY RUN] Row %d: %s", item.row_number, item.summary)
                else:
                    assert store is not None
                    for w in item.writes:
                        if isinstance(w, FinanceUpsert):
                            _apply_finance(store, w, now)
                        else:
                            _apply_document(store, w)
                    _logger.info("  Row %d: %s", item.row_number, item.summary)
                result.imported += 1
            except Exception as e:
                result.errors.append(f"Row {item.row_number}: {e}")
                result.skipped += 1

        if i % progress_every == 0 or i == len(items):
            _logger.info("  Processing %s: %d/%d", label, i, len(items))

    return result


__all__ = [
    "DocumentWrite",
    "FinanceUpsert",
    "ImportMode",
    "ImportResult",
    "LedgerWrite",
    "PlanItem",
    "PlannedRecord",
    "RowError",
    "SkippedRow",
    "apply",
]
