"""Ingest utilities shared by CLI commands and the import API.

File-level failures (missing, unreadable, undecodable) are fatal for a run and
surface as :class:`ImportFileError`; everything after decoding is handled per
row by the adapters.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path


class ImportFileError(Exception):
    """An input file is missing, unreadable or not valid text."""


def read_csv_text(csv_path: str | PathLike[str]) -> str:
    """Read an export as text (UTF-8, BOM tolerated by the tokenizer)."""

    p = Path(csv_path)
    if not p.exists():
        raise ImportFileError(f"File not found: {p}")
    if not p.is_file():
        raise ImportFileError(f"Not a file: {p}")
    try:
        # newline="" keeps quoted line breaks intact for the tokenizer
        with p.open(encoding="utf-8", newline="") as f:
            return f.read()
    except PermissionError as e:
        raise ImportFileError(f"Permission denied: {p}") from e
    except UnicodeDecodeError as e:
        raise ImportFileError(f"File is not valid UTF-8 text: {p} ({e})") from e
    except OSError as e:
        raise ImportFileError(f"Failed to read {p}: {e}") from e


def find_report(directory: str | PathLike[str], suffix: str) -> Path:
    """Locate ``<Company>_<suffix>`` inside ``directory``.

    QuickBooks prefixes report exports with the company name, so files are
    matched by suffix. When several match, the lexicographically first wins.
    """

    d = Path(directory)
    if not d.is_dir():
        raise ImportFileError(f"Imports directory not found: {d}")
    matches = sorted(p for p in d.iterdir() if p.is_file() and p.name.endswith(suffix))
    if not matches:
        raise ImportFileError(f"No file ending in '{suffix}' found in {d}")
    return matches[0]


__all__ = ["ImportFileError", "find_report", "read_csv_text"]
