"""Quote-aware CSV tokenizer for accounting exports.

Parsing follows RFC 4180 rules via the stdlib :mod:`csv` module: a ``"``
opens/closes a quoted field, ``""`` inside quotes is a literal quote, and
``\\n``, ``\\r\\n`` or a bare ``\\r`` end a row only outside quotes. The reader
is non-strict, so an unterminated quote at end of input is closed implicitly
instead of raising.

On top of the reader this module applies the export conventions the importers
rely on:

- every field is trimmed after quote stripping;
- blank and whitespace-only lines are dropped;
- a UTF-8 byte-order mark on the first field is removed.

QuickBooks reports put a title preamble above the real header, so
``find_header_row`` locates the header by predicate and ``records_from_rows``
builds header-keyed dicts from there.
"""

from __future__ import annotations

import csv
import io
import sys
from collections.abc import Callable, Sequence

type RawRow = list[str]

_BOM = "\ufeff"

# Memo and description cells can exceed the reader's 128 KiB default, as can an
# unterminated quote that swallows the rest of the file.
csv.field_size_limit(min(sys.maxsize, 2**31 - 1))


class _ExportDialect(csv.Dialect):
    delimiter = ","
    quotechar = '"'
    doublequote = True
    # Tolerate `a, "b, c"` (space before the opening quote) as a quoted field
    skipinitialspace = True
    lineterminator = "\n"
    quoting = csv.QUOTE_MINIMAL
    strict = False


def parse(text: str) -> list[RawRow]:
    """Split CSV ``text`` into rows of trimmed field strings.

    Never raises on malformed quoting; an open quote at end of input swallows
    the remainder into its field.
    """

    if text.startswith(_BOM):
        text = text[len(_BOM) :]

    # newline="" keeps \r, \r\n and \n intact so the csv module sees the real
    # terminators (and the ones embedded in quoted fields).
    with io.StringIO(text, newline="") as f:
        rows: list[RawRow] = []
        for raw in csv.reader(f, dialect=_ExportDialect):
            fields = [field.strip() for field in raw]
            if not fields or (len(fields) == 1 and not fields[0]):
                continue
            rows.append(fields)
    if rows and rows[0] and rows[0][0].startswith(_BOM):
        rows[0][0] = rows[0][0][len(_BOM) :].strip()
    return rows


def find_header_row(
    rows: Sequence[Sequence[str]], predicate: Callable[[Sequence[str]], bool]
) -> int | None:
    """Return the index of the first row satisfying ``predicate`` (or ``None``)."""

    for idx, row in enumerate(rows):
        if predicate(row):
            return idx
    return None


def records_from_rows(
    header: Sequence[str], rows: Sequence[Sequence[str]]
) -> list[dict[str, str]]:
    """Key each row by ``header``; missing trailing cells become ``""``.

    Extra cells beyond the header are dropped. Duplicate header names keep the
    first column's value.
    """

    records: list[dict[str, str]] = []
    for row in rows:
        rec: dict[str, str] = {}
        for j, name in enumerate(header):
            if name in rec:
                continue
            rec[name] = row[j] if j < len(row) else ""
        records.append(rec)
    return records


def parse_records(text: str) -> list[dict[str, str]]:
    """Parse ``text`` whose first row is the header into header-keyed dicts."""

    rows = parse(text)
    if not rows:
        return []
    return records_from_rows(rows[0], rows[1:])


__all__ = [
    "RawRow",
    "find_header_row",
    "parse",
    "parse_records",
    "records_from_rows",
]
