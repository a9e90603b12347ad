"""Durable storage of sourcing records.

:class:`SourcingRecordStore` writes every record to the structured store and
refreshes the matching mirror document. Reads prefer the structured store and
fall back to the copy embedded in the mirror, which is how records written
before the structured store existed are picked up; the next save migrates
them.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from quotedesk.core.clock import Clock, SystemClock
from quotedesk.core.exceptions import InvariantError, NotFoundError, QuoteDeskError, StorageWriteError
from quotedesk.core.logging import get_logger
from quotedesk.core.models import SourcingRecord
from quotedesk.core.storage import mirror as fields
from quotedesk.core.storage.ports import MirrorStore, StructuredStore

logger = get_logger(__name__)


class RecordOrigin(str, Enum):
    """Store a record was read from."""

    STRUCTURED = "structured"
    MIRROR = "mirror"


@dataclass(frozen=True)
class LoadedRecord:
    record: SourcingRecord
    origin: RecordOrigin

    @property
    def needs_migration(self) -> bool:
        return self.origin is RecordOrigin.MIRROR


@dataclass(frozen=True)
class WriteReport:
    """Outcome of one save across both tiers."""

    key: str
    mirror_updated: bool
    mirror_error: QuoteDeskError | None = None


class WritePolicy(ABC):
    """How a save is spread over the storage tiers."""

    @abstractmethod
    async def write(
        self,
        key: str,
        document: Mapping[str, Any],
        mirror_changes: Mapping[str, Any],
        *,
        require_mirror: bool = False,
    ) -> WriteReport:
        ...


def _as_storage_error(exc: Exception, tier: str) -> QuoteDeskError:
    if isinstance(exc, QuoteDeskError):
        return exc
    error = StorageWriteError(f"{tier} write failed: {exc}", tier=tier)
    error.__cause__ = exc
    return error


class DualWritePolicy(WritePolicy):
    """Write the structured store, then the mirror.

    Both writes are always attempted. A structured failure fails the save. A
    mirror failure is logged and reported unless ``require_mirror`` is set.
    """

    def __init__(self, structured: StructuredStore, mirror: MirrorStore) -> None:
        self.structured = structured
        self.mirror = mirror

    async def write(
        self,
        key: str,
        document: Mapping[str, Any],
        mirror_changes: Mapping[str, Any],
        *,
        require_mirror: bool = False,
    ) -> WriteReport:
        structured_error: QuoteDeskError | None = None
        try:
            await self.structured.put_record(key, document)
        except Exception as exc:
            structured_error = _as_storage_error(exc, "structured")

        mirror_error: QuoteDeskError | None = None
        mirror_updated = False
        try:
            mirror_updated = await self.mirror.update_entry(key, mirror_changes)
        except Exception as exc:
            mirror_error = _as_storage_error(exc, "mirror")

        if structured_error is not None:
            raise structured_error
        if mirror_error is not None:
            if require_mirror:
                raise mirror_error
            logger.bind(record_key=key, error_code=mirror_error.error_code).warning(
                f"Mirror update failed, structured copy kept: {mirror_error.message}"
            )
        elif not mirror_updated and require_mirror:
            raise NotFoundError(f"No workflow entry for '{key}'", kind="workflow_entry", identifier=key)
        return WriteReport(key=key, mirror_updated=mirror_updated, mirror_error=mirror_error)


class StructuredOnlyPolicy(WritePolicy):
    """Write the structured store only."""

    def __init__(self, structured: StructuredStore) -> None:
        self.structured = structured

    async def write(
        self,
        key: str,
        document: Mapping[str, Any],
        mirror_changes: Mapping[str, Any],
        *,
        require_mirror: bool = False,
    ) -> WriteReport:
        if require_mirror:
            raise StorageWriteError("No mirror store configured", tier="mirror", retryable=False)
        try:
            await self.structured.put_record(key, document)
        except QuoteDeskError:
            raise
        except Exception as exc:
            raise StorageWriteError(f"structured write failed: {exc}", tier="structured") from exc
        return WriteReport(key=key, mirror_updated=False)


class SourcingRecordStore:
    """Save and load sourcing records by work-order key."""

    def __init__(
        self,
        structured: StructuredStore,
        mirror: MirrorStore | None = None,
        write_policy: WritePolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.structured = structured
        self.mirror = mirror
        if write_policy is None:
            write_policy = DualWritePolicy(structured, mirror) if mirror else StructuredOnlyPolicy(structured)
        self.write_policy = write_policy
        self.clock = clock or SystemClock()
        self._init_lock = asyncio.Lock()
        self._initialized = False

    async def initialize(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            await self.structured.initialize()
            if self.mirror is not None:
                await self.mirror.initialize()
            self._initialized = True

    async def save(
        self,
        key: str,
        record: SourcingRecord,
        *,
        bookkeeping: Mapping[str, Any] | None = None,
        require_mirror: bool = False,
    ) -> WriteReport:
        """Upsert ``record`` and refresh its mirror entry.

        Args:
            key: work-order key
            record: record to persist
            bookkeeping: extra mirror fields written with this save
            require_mirror: fail unless the mirror entry was updated

        Raises:
            StorageWriteError: the structured write failed, or the mirror
                write failed while ``require_mirror`` was set
            NotFoundError: ``require_mirror`` was set and no entry exists
        """
        await self.initialize()
        document = record.to_document()
        changes: dict[str, Any] = {
            fields.SOURCING_DATA: record.to_workflow_document(),
            fields.SOURCING_STARTED: True,
            fields.LAST_UPDATED: self.clock.now().isoformat(),
        }
        changes.update(bookkeeping or {})
        report = await self.write_policy.write(key, document, changes, require_mirror=require_mirror)
        logger.bind(record_key=key).debug(f"Saved sourcing record ({len(record.vendors)} vendors)")
        return report

    async def locate(self, key: str) -> LoadedRecord:
        """Load a record and report which store it came from."""
        await self.initialize()
        document = await self.structured.get_record(key)
        if document is not None:
            return LoadedRecord(self._decode(key, document), RecordOrigin.STRUCTURED)

        entry = await self.mirror.get_entry(key) if self.mirror is not None else None
        embedded = entry.get(fields.SOURCING_DATA) if entry else None
        if isinstance(embedded, dict) and embedded.get("vendors"):
            logger.bind(record_key=key).info("Loaded legacy sourcing data from the mirror")
            return LoadedRecord(self._decode(key, embedded), RecordOrigin.MIRROR)

        raise NotFoundError(f"No sourcing record for '{key}'", kind="sourcing_record", identifier=key)

    async def load(self, key: str) -> SourcingRecord:
        return (await self.locate(key)).record

    async def mirror_entry(self, key: str) -> dict[str, Any] | None:
        if self.mirror is None:
            return None
        await self.initialize()
        return await self.mirror.get_entry(key)

    async def mark_rejection_acknowledged(self, key: str, user: str) -> None:
        """Record on the workflow entry that ``user`` has seen a rejection."""
        await self.initialize()
        if self.mirror is None:
            raise StorageWriteError("No mirror store configured", tier="mirror", retryable=False)
        changes = {
            fields.REJECTION_ACKNOWLEDGED: True,
            fields.REJECTION_ACKNOWLEDGED_BY: user,
            fields.REJECTION_ACKNOWLEDGED_AT: self.clock.now().isoformat(),
            fields.REJECTION_VIEWED: True,
        }
        if not await self.mirror.update_entry(key, changes):
            raise NotFoundError(f"No workflow entry for '{key}'", kind="workflow_entry", identifier=key)

    @staticmethod
    def _decode(key: str, document: dict[str, Any]) -> SourcingRecord:
        try:
            return SourcingRecord.from_document(document)
        except PydanticValidationError as exc:
            raise InvariantError(
                f"Stored sourcing data for '{key}' is malformed",
                details={"record_key": key, "errors": exc.error_count()},
            ) from exc


__all__ = [
    "DualWritePolicy",
    "LoadedRecord",
    "RecordOrigin",
    "SourcingRecordStore",
    "StructuredOnlyPolicy",
    "WritePolicy",
    "WriteReport",
]
