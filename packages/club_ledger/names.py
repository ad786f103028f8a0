"""Display-name normalization, denylisting and entity identity.

Two names refer to the same entity iff their normalized forms are equal
(lowercase, whitespace runs collapsed, trimmed). There is deliberately no
fuzzy matching: attributing a payment to the wrong family is worse than
creating a second record someone merges by hand.

QuickBooks customer lists mix families with businesses (sponsors) and a
built-in sample customer. ``NameMatcher`` holds the configured denylist of
non-person names; denylisted names go to the sponsor path and never become
player entities, and sample names become nothing at all.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .logging_setup import get_logger

_logger = get_logger("club_ledger.names")

DEFAULT_DENYLIST: tuple[str, ...] = (
    "Craig Wealth Advisors",
    "Eising Construction",
    "FiberNorth, Inc.",
    "Kadlec Associates",
    "Molon Excavating",
    "Reichard and Hack",
    "Sample Customer",
    "Stanley Steemer",
    "TBA Credit Union",
    "Torch Riviera",
    "Triston Cole Agency",
)

DEFAULT_SAMPLE_NAMES: tuple[str, ...] = ("Sample Customer",)


def normalize_name(name: str | None) -> str:
    """Lowercase, collapse internal whitespace to single spaces, and trim."""

    if not name:
        return ""
    return " ".join(name.split()).lower()


def names_match(a: str | None, b: str | None) -> bool:
    na, nb = normalize_name(a), normalize_name(b)
    return bool(na) and na == nb


@dataclass(frozen=True, slots=True)
class NameMatcher:
    """Denylist and sample-name checks over normalized names."""

    denylist: frozenset[str]
    sample_names: frozenset[str]

    @classmethod
    def from_names(
        cls,
        denylist: Iterable[str] = DEFAULT_DENYLIST,
        sample_names: Iterable[str] = DEFAULT_SAMPLE_NAMES,
    ) -> NameMatcher:
        samples = frozenset(normalize_name(n) for n in sample_names if normalize_name(n))
        denied = frozenset(normalize_name(n) for n in denylist if normalize_name(n))
        # Sample names are never people either
        return cls(denylist=denied | samples, sample_names=samples)

    def is_denylisted(self, name: str | None) -> bool:
        return normalize_name(name) in self.denylist

    def is_sample(self, name: str | None) -> bool:
        return normalize_name(name) in self.sample_names

    def is_person(self, name: str | None) -> bool:
        n = normalize_name(name)
        return bool(n) and n not in self.denylist

    def is_sponsor(self, name: str | None) -> bool:
        n = normalize_name(name)
        return bool(n) and n in self.denylist and n not in self.sample_names


# ---------------------------------------------------------------------------
# Name parts and deterministic keys
# ---------------------------------------------------------------------------


def split_name(full_name: str) -> tuple[str, str]:
    """Split a display name into ``(first, last)``.

    ``"Last, First"`` (QuickBooks customer style) splits on the first comma;
    otherwise the last whitespace-separated token is the last name.
    """

    s = " ".join(full_name.split())
    if "," in s:
        last, _, first = s.partition(",")
        first = " ".join(p.strip() for p in first.split(",") if p.strip())
        return first.strip(), last.strip()
    parts = s.split(" ")
    if len(parts) == 1:
        return parts[0], ""
    return " ".join(parts[:-1]), parts[-1]


def entity_key(name: str) -> str:
    """Deterministic document key for a person, e.g. ``"Jane  Doe"`` -> ``jane-doe``.

    Names with no ASCII letters or digits (``"李雷"``) get a hashed key instead.
    """

    s = re.sub(r"\s+", "-", name.strip().lower())
    s = re.sub(r"[^a-z0-9-]", "", s)
    return s if s.strip("-") else _hashed_key("entity", name)


def sponsor_key(name: str) -> str:
    """Deterministic document key for a business, e.g. ``"FiberNorth, Inc."`` -> ``fibernorth-inc``."""

    s = re.sub(r"[^a-z0-9]+", "-", name.strip().lower())
    return s.strip("-") or _hashed_key("sponsor", name)


def _hashed_key(prefix: str, name: str) -> str:
    digest = hashlib.sha256(normalize_name(name).encode("utf-8")).hexdigest()
    return f"{prefix}-{digest[:16]}"


def finance_key(entity_id: str, season: str) -> str:
    return f"{entity_id}-{season}"


# ---------------------------------------------------------------------------
# Existing-entity lookup
# ---------------------------------------------------------------------------


def _display_name(doc: Mapping[str, Any]) -> str:
    name = doc.get("displayName")
    if isinstance(name, str) and name.strip():
        return name
    first = str(doc.get("firstName") or "").strip()
    last = str(doc.get("lastName") or "").strip()
    return f"{first} {last}".strip()


class EntityDirectory:
    """Index of existing player entities by normalized display name.

    Built once per run from the ledger store (LIVE) or empty (DRY_RUN).
    ``resolve`` returns the existing id for a matching name, otherwise the
    deterministic ``entity_key`` so new entities and later re-imports agree.
    When several stored entities share a normalized name the first one read
    wins and a warning is logged.
    """

    def __init__(self, entries: Iterable[tuple[str, Mapping[str, Any]]] = ()) -> None:
        self._by_name: dict[str, str] = {}
        self._ambiguous: set[str] = set()
        for key, doc in entries:
            n = normalize_name(_display_name(doc))
            if not n:
                continue
            if n in self._by_name:
                self._ambiguous.add(n)
                continue
            self._by_name[n] = key

    def __len__(self) -> int:
        return len(self._by_name)

    def lookup(self, name: str) -> str | None:
        n = normalize_name(name)
        if n in self._ambiguous:
            _logger.warning(
                "Several existing players match %r; using %s", name, self._by_name[n]
            )
        return self._by_name.get(n)

    def resolve(self, name: str) -> str:
        return self.lookup(name) or entity_key(name)


__all__ = [
    "DEFAULT_DENYLIST",
    "DEFAULT_SAMPLE_NAMES",
    "EntityDirectory",
    "NameMatcher",
    "entity_key",
    "finance_key",
    "names_match",
    "normalize_name",
    "split_name",
    "sponsor_key",
]
