"""Value normalizers shared by every import adapter.

Pure functions only: no logging, no I/O. Callers decide whether an
unparseable value is fatal for the row (most adapters report it as a row
error and continue).

Dates
-----
``parse_date`` accepts ISO ``YYYY-MM-DD`` plus the US forms QuickBooks emits
(``M/D/YYYY``, ``MM/DD/YYYY``, ``M-D-YYYY``), with 2-digit years expanded on a
fixed pivot: ``> 50`` is 19xx, ``<= 50`` is 20xx.

Amounts
-------
``parse_amount`` returns a signed :class:`~decimal.Decimal` (never a float) so
ledger sums stay exact.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_US_SLASH_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
_US_DASH_RE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{2}|\d{4})$")

_CENTURY_PIVOT = 50


def _expand_year(raw: str) -> int:
    year = int(raw)
    if len(raw) == 2:
        return 1900 + year if year > _CENTURY_PIVOT else 2000 + year
    return year


def parse_date(value: str | None) -> date | None:
    """Parse a date in ISO or US month-first form; ``None`` when unparseable."""

    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    m = _ISO_RE.match(s)
    if m:
        y, mo, d = int(m.group(1)), int(m.group(2)), int(m.group(3))
    else:
        m = _US_SLASH_RE.match(s) or _US_DASH_RE.match(s)
        if not m:
            return None
        mo, d, y = int(m.group(1)), int(m.group(2)), _expand_year(m.group(3))

    try:
        return date(y, mo, d)
    except ValueError:
        # Calendar-impossible values such as 2/30/2025
        return None


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_PLAIN_NUMBER_RE = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")


def parse_amount(value: str | None) -> Decimal | None:
    """Parse a currency amount into a signed ``Decimal``.

    Handles ``$1,234.56``, ``-$500.00``, ``($500.00)``, ``1234.56`` and
    ``-1234``. Returns ``None`` for empty input, a bare ``-``, a doubly
    negated value such as ``-(500)`` and any non-numeric remainder.
    """

    if value is None:
        return None
    s = value.strip()
    if not s or s == "-":
        return None

    negations = 0
    # Iteratively strip leading sign, currency symbol, and surrounding
    # parentheses until stable so any ordering of these markers works.
    while True:
        changed = False
        if s.startswith("-"):
            negations += 1
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negations += 1
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    if negations > 1:
        return None

    # Strip thousands separators; keep decimal point.
    s = s.replace(",", "").strip()
    if not _PLAIN_NUMBER_RE.match(s):
        return None

    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    return -d if negations else d


def fmt_amount(d: Decimal) -> str:
    """Format with exactly two decimals (half-up) and a leading minus."""

    q = d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{q:.2f}"


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    # Replace internal newlines with spaces, collapse whitespace, and strip.
    cleaned = re.sub(r"\s+", " ", value).strip()
    return cleaned or None


_PHONE_RE = re.compile(r"Phone:\s*(\S+(?:\s\S+)?(?:\s\S+)?)")
_MOBILE_RE = re.compile(r"Mobile:\s*(\S+(?:\s\S+)?(?:\s\S+)?)")


def parse_phone(value: str | None) -> str:
    """Extract the first number from a QuickBooks "Phone numbers" cell.

    The contact list packs several numbers into one cell, e.g.
    ``"Phone:(231) 590-6615 Mobile:(734) 751-6933"``. The ``Phone:`` entry
    wins, then ``Mobile:``; anything else is returned trimmed as-is.
    """

    if not value:
        return ""
    for pattern in (_PHONE_RE, _MOBILE_RE):
        m = pattern.search(value)
        if m:
            # Drop a following label captured by the lenient token grab
            return re.split(r"\s+\w+:", m.group(1))[0].strip()
    return value.strip()


__all__ = [
    "clean_text",
    "fmt_amount",
    "parse_amount",
    "parse_date",
    "parse_phone",
]
