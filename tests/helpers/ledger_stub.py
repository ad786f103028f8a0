"""In-memory ledger stores for executor and planning tests.

``MemoryLedgerStore`` implements the ``LedgerStore`` contract over plain dicts
and records every call, so tests can assert both the final documents and that
a dry run never touched the store. ``FlakyLedgerStore`` raises on writes to
chosen keys to exercise per-row failure handling.
"""

from __future__ import annotations

import copy
import itertools
from collections.abc import Iterable, Mapping
from typing import Any


class MemoryLedgerStore:
    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, str]] = []
        self._ids = itertools.count(1)

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        self.calls.append(("get", collection, key))
        doc = self.collections.get(collection, {}).get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def set(
        self,
        collection: str,
        key: str,
        record: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        self.calls.append(("set", collection, key))
        coll = self.collections.setdefault(collection, {})
        incoming = copy.deepcopy(dict(record))
        if merge and key in coll:
            coll[key] = {**coll[key], **incoming}
        else:
            coll[key] = incoming

    def add(self, collection: str, record: Mapping[str, Any]) -> str:
        key = f"auto-{next(self._ids)}"
        self.set(collection, key, record)
        return key

    def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> list[tuple[str, dict[str, Any]]]:
        self.calls.append(("query", collection, ""))
        out = []
        for key, doc in self.collections.get(collection, {}).items():
            if filters and any(doc.get(k) != v for k, v in filters.items()):
                continue
            out.append((key, copy.deepcopy(doc)))
        return out

    # Convenience for assertions
    def docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.get(collection, {})


class FlakyLedgerStore(MemoryLedgerStore):
    """Raise ``RuntimeError`` when writing any of ``failing_keys``."""

    def __init__(self, failing_keys: Iterable[str]) -> None:
        super().__init__()
        self.failing_keys = set(failing_keys)

    def set(
        self,
        collection: str,
        key: str,
        record: Mapping[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        if key in self.failing_keys:
            raise RuntimeError(f"write rejected for {collection}/{key}")
        super().set(collection, key, record, merge=merge)
