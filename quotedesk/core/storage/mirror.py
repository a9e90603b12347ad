"""Mirror store adapters.

The mirror is the array of workflow entries the other screens read in one
go. Documents are plain dicts keyed by ``id``; this package only touches the
fields listed below and preserves everything else.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from quotedesk.core.exceptions import StorageWriteError
from quotedesk.core.logging import get_logger
from quotedesk.core.storage.ports import MirrorStore

logger = get_logger(__name__)

TIER = "mirror"

ENTRY_KEY = "id"
SOURCING_DATA = "sourcingData"
SOURCING_STARTED = "sourcingStarted"
LAST_UPDATED = "lastUpdated"
SOURCING_COMPLETED = "sourcingCompleted"
SOURCING_COMPLETED_AT = "sourcingCompletedAt"
COMPLETED_BY = "completedBy"
STATUS = "status"
STATUS_APPROVAL_PENDING = "approval_pending"
REJECTION_ACKNOWLEDGED = "rejectionAcknowledged"
REJECTION_ACKNOWLEDGED_BY = "rejectionAcknowledgedBy"
REJECTION_ACKNOWLEDGED_AT = "rejectionAcknowledgedAt"
REJECTION_VIEWED = "rejectionViewed"


def _entry_key(entry: Mapping[str, Any]) -> str:
    if ENTRY_KEY not in entry:
        raise StorageWriteError("Mirror entry has no id", tier=TIER, retryable=False)
    return str(entry[ENTRY_KEY])


class InMemoryMirrorStore(MirrorStore):
    """Mirror held in a list; handy for tests and embedding."""

    def __init__(self, entries: Iterable[Mapping[str, Any]] = ()) -> None:
        self._entries: list[dict[str, Any]] = [dict(entry) for entry in entries]

    async def initialize(self) -> None:
        return None

    def _find(self, key: str) -> dict[str, Any] | None:
        return next((entry for entry in self._entries if str(entry.get(ENTRY_KEY)) == key), None)

    async def get_entry(self, key: str) -> dict[str, Any] | None:
        entry = self._find(key)
        return copy.deepcopy(entry) if entry is not None else None

    async def list_entries(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._entries)

    async def put_entry(self, entry: Mapping[str, Any]) -> None:
        key = _entry_key(entry)
        existing = self._find(key)
        if existing is None:
            self._entries.append(copy.deepcopy(dict(entry)))
        else:
            existing.clear()
            existing.update(copy.deepcopy(dict(entry)))

    async def update_entry(self, key: str, changes: Mapping[str, Any]) -> bool:
        entry = self._find(key)
        if entry is None:
            return False
        entry.update(copy.deepcopy(dict(changes)))
        return True


class JsonFileMirrorStore(MirrorStore):
    """Mirror persisted as one JSON array in a file.

    Each write rewrites the whole file through a temporary sibling and an
    atomic rename, so readers never observe a half written array.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageWriteError(f"Cannot create mirror directory: {exc}", tier=TIER) from exc

    def _read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageWriteError(f"Cannot read mirror file: {exc}", tier=TIER) from exc
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StorageWriteError(f"Mirror file is not valid JSON: {exc}", tier=TIER, retryable=False) from exc
        if not isinstance(data, list):
            raise StorageWriteError("Mirror file must hold a JSON array", tier=TIER, retryable=False)
        return data

    def _write(self, entries: list[dict[str, Any]]) -> None:
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        try:
            tmp_path.write_text(json.dumps(entries, indent=2, default=str), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageWriteError(f"Mirror write rejected: {exc}", tier=TIER) from exc

    async def get_entry(self, key: str) -> dict[str, Any] | None:
        async with self._lock:
            entries = self._read()
        return next((entry for entry in entries if str(entry.get(ENTRY_KEY)) == key), None)

    async def list_entries(self) -> list[dict[str, Any]]:
        async with self._lock:
            return self._read()

    async def put_entry(self, entry: Mapping[str, Any]) -> None:
        key = _entry_key(entry)
        async with self._lock:
            entries = self._read()
            for index, existing in enumerate(entries):
                if str(existing.get(ENTRY_KEY)) == key:
                    entries[index] = dict(entry)
                    break
            else:
                entries.append(dict(entry))
            self._write(entries)

    async def update_entry(self, key: str, changes: Mapping[str, Any]) -> bool:
        async with self._lock:
            entries = self._read()
            for entry in entries:
                if str(entry.get(ENTRY_KEY)) == key:
                    entry.update(changes)
                    break
            else:
                return False
            self._write(entries)
        logger.debug(f"Mirror entry {key} updated ({', '.join(changes)})")
        return True


__all__ = [
    "COMPLETED_BY",
    "ENTRY_KEY",
    "LAST_UPDATED",
    "REJECTION_ACKNOWLEDGED",
    "REJECTION_ACKNOWLEDGED_AT",
    "REJECTION_ACKNOWLEDGED_BY",
    "REJECTION_VIEWED",
    "SOURCING_COMPLETED",
    "SOURCING_COMPLETED_AT",
    "SOURCING_DATA",
    "SOURCING_STARTED",
    "STATUS",
    "STATUS_APPROVAL_PENDING",
    "InMemoryMirrorStore",
    "JsonFileMirrorStore",
]
