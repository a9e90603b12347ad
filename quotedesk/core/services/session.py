"""Editing session over one sourcing record.

The session owns the in-memory working copy. Mutators replace it with the
record returned by :class:`VendorSetManager` and hand the new record back;
saves go through the :class:`AutoSaveCoordinator` gate.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from quotedesk.core.clock import Clock, SystemClock
from quotedesk.core.config.settings import QuoteDeskConfig
from quotedesk.core.exceptions import NotFoundError, SaveInProgressError
from quotedesk.core.logging import get_logger
from quotedesk.core.models import Attachment, AttachmentUpload, RawValue, SourcingRecord, UploadOutcome
from quotedesk.core.services.aggregate import PricingTotals, VendorStanding
from quotedesk.core.services.autosave import (
    AsyncioIntervalScheduler,
    AutoSaveCoordinator,
    SaveOutcome,
    SaveScheduler,
)
from quotedesk.core.services.vendors import VendorSetManager
from quotedesk.core.storage import (
    BlobAttachmentStore,
    DuckDBStructuredStore,
    JsonFileMirrorStore,
    RecordOrigin,
    SourcingRecordStore,
)

logger = get_logger(__name__)


@dataclass
class Stores:
    """Stores sharing one structured backend."""

    records: SourcingRecordStore
    attachments: BlobAttachmentStore

    async def close(self) -> None:
        await self.records.structured.close()


def build_stores(config: QuoteDeskConfig, clock: Clock | None = None) -> Stores:
    """Create the DuckDB/JSON backed stores described by ``config``."""
    clock = clock or SystemClock()
    structured = DuckDBStructuredStore(config.storage.database_path)
    mirror = JsonFileMirrorStore(config.storage.mirror_path)
    return Stores(
        records=SourcingRecordStore(structured, mirror, clock=clock),
        attachments=BlobAttachmentStore.from_config(structured, config.attachments, clock=clock),
    )


UploadFile = tuple[str, str, bytes]
"""``(name, media_type, payload)``"""


class SourcingSession:
    """Working copy of one record plus the operations the screens call."""

    def __init__(
        self,
        key: str,
        record: SourcingRecord,
        *,
        records: SourcingRecordStore,
        attachments: BlobAttachmentStore,
        manager: VendorSetManager | None = None,
        scheduler: SaveScheduler | None = None,
        autosave_enabled: bool = True,
        user: str = "unknown",
        origin: RecordOrigin | None = None,
    ) -> None:
        self.key = key
        self._record = record
        self.records = records
        self.attachments = attachments
        self.manager = manager or VendorSetManager(clock=records.clock)
        self.user = user
        self.origin = origin
        self.owned_stores: Stores | None = None
        self.autosave = AutoSaveCoordinator(
            records,
            key,
            lambda: self._record,
            scheduler=scheduler,
            enabled=autosave_enabled,
            clock=records.clock,
        )

    @classmethod
    async def open(
        cls,
        key: str,
        *,
        records: SourcingRecordStore,
        attachments: BlobAttachmentStore,
        manager: VendorSetManager | None = None,
        **options: Any,
    ) -> SourcingSession:
        """Load ``key`` or seed a fresh record when neither store has it."""
        manager = manager or VendorSetManager(clock=records.clock)
        try:
            loaded = await records.locate(key)
        except NotFoundError:
            record, origin = manager.create_record(key), None
        else:
            record, origin = loaded.record, loaded.origin
        return cls(key, record, records=records, attachments=attachments, manager=manager, origin=origin, **options)

    @classmethod
    async def from_config(cls, key: str, config: QuoteDeskConfig, clock: Clock | None = None) -> SourcingSession:
        stores = build_stores(config, clock)
        try:
            session = await cls.open(
                key,
                records=stores.records,
                attachments=stores.attachments,
                scheduler=AsyncioIntervalScheduler(config.autosave.interval_seconds),
                autosave_enabled=config.autosave.enabled,
                user=config.session.user,
            )
        except BaseException:
            await stores.close()
            raise
        session.owned_stores = stores
        return session

    async def __aenter__(self) -> SourcingSession:
        await self.autosave.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self.autosave.stop()
        if self.owned_stores is not None:
            await self.owned_stores.close()
            self.owned_stores = None

    # state

    @property
    def record(self) -> SourcingRecord:
        return self._record

    @property
    def active_vendor_id(self) -> int:
        return self._record.active_vendor_id  # type: ignore[return-value]

    def _target(self, vendor_id: int | None) -> int:
        return self.active_vendor_id if vendor_id is None else vendor_id

    def _apply(self, record: SourcingRecord) -> SourcingRecord:
        self._record = record
        return record

    def totals(self, vendor_id: int | None = None) -> PricingTotals:
        vendor = self.manager.vendor(self._record, self._target(vendor_id))
        return self.manager.engine.totals(vendor.pricing)

    def compare(self) -> list[VendorStanding]:
        return self.manager.engine.compare(self._record)

    # mutators

    def update_field(self, section: str, field: str, value: RawValue, vendor_id: int | None = None) -> SourcingRecord:
        return self._apply(self.manager.update_field(self._record, self._target(vendor_id), section, field, value))

    def add_vendor(self) -> SourcingRecord:
        return self._apply(self.manager.add_vendor(self._record))

    def remove_vendor(self, vendor_id: int) -> SourcingRecord:
        return self._apply(self.manager.remove_vendor(self._record, vendor_id))

    def set_primary(self, vendor_id: int) -> SourcingRecord:
        return self._apply(self.manager.set_primary(self._record, vendor_id))

    def switch_vendor(self, vendor_id: int) -> SourcingRecord:
        return self._apply(self.manager.switch_vendor(self._record, vendor_id))

    def rename_vendor(self, vendor_id: int, name: str) -> SourcingRecord:
        return self._apply(self.manager.rename_vendor(self._record, vendor_id, name))

    def copy_vendor_data(self, from_id: int, to_id: int | None = None) -> SourcingRecord:
        """Copy another vendor's data onto ``to_id`` (the active vendor by default)."""
        return self._apply(self.manager.copy_vendor_data(self._record, from_id, self._target(to_id)))

    def add_line_item(self, vendor_id: int | None = None) -> SourcingRecord:
        return self._apply(self.manager.add_line_item(self._record, self._target(vendor_id)))

    def update_line_item(
        self, item_id: int, field: str, value: RawValue, vendor_id: int | None = None
    ) -> SourcingRecord:
        return self._apply(
            self.manager.update_line_item(self._record, self._target(vendor_id), item_id, field, value)
        )

    def remove_line_item(self, item_id: int, vendor_id: int | None = None) -> SourcingRecord:
        return self._apply(self.manager.remove_line_item(self._record, self._target(vendor_id), item_id))

    # persistence

    async def save(self, silent: bool = False) -> SaveOutcome:
        outcome = await self.autosave.save(silent=silent)
        if outcome is SaveOutcome.SAVED:
            self.origin = RecordOrigin.STRUCTURED
        return outcome

    async def complete(self, user: str | None = None) -> SaveOutcome:
        """Save and mark the workflow entry as awaiting approval."""
        outcome = await self.autosave.complete(user or self.user)
        if outcome is SaveOutcome.REJECTED:
            raise SaveInProgressError(details={"record_key": self.key})
        self.origin = RecordOrigin.STRUCTURED
        logger.bind(record_key=self.key).info(f"Sourcing completed by {user or self.user}")
        return outcome

    async def acknowledge_rejection(self, user: str | None = None) -> None:
        await self.records.mark_rejection_acknowledged(self.key, user or self.user)

    # attachments

    async def upload(self, files: Iterable[UploadFile], vendor_id: int | None = None) -> list[UploadOutcome]:
        """Store files for a vendor and reference the stored ones from it."""
        owner_id = self._target(vendor_id)
        self.manager.vendor(self._record, owner_id)
        uploads = [
            AttachmentUpload(
                name=name,
                media_type=media_type,
                payload=payload,
                owner_id=owner_id,
                parent_key=self.key,
                created_by=self.user,
            )
            for name, media_type, payload in files
        ]
        outcomes = await self.attachments.save_many(uploads)
        stored = [outcome.attachment.id for outcome in outcomes if outcome.attachment is not None]
        if stored:
            current = self.manager.vendor(self._record, owner_id).attachments
            self._apply(self.manager.set_attachments(self._record, owner_id, [*current, *stored]))
        return outcomes

    async def remove_attachment(self, attachment_id: str, vendor_id: int | None = None) -> SourcingRecord:
        owner_id = self._target(vendor_id)
        await self.attachments.delete(attachment_id)
        remaining = [item for item in self.manager.vendor(self._record, owner_id).attachments if item != attachment_id]
        return self._apply(self.manager.set_attachments(self._record, owner_id, remaining))

    async def list_attachments(self, vendor_id: int | None = None) -> list[Attachment]:
        return await self.attachments.list_by_owner(self._target(vendor_id), self.key)

    async def view_attachment(self, attachment_id: str) -> Attachment:
        return await self.attachments.get(attachment_id)

    async def download_attachment(self, attachment_id: str, directory: str | Path) -> Path:
        return await self.attachments.export(attachment_id, directory)


__all__ = ["SourcingSession", "Stores", "UploadFile", "build_stores"]
