"""Binary attachment storage."""

from __future__ import annotations

import asyncio
import itertools
import secrets
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from quotedesk.core.clock import Clock, SystemClock
from quotedesk.core.config.settings import DEFAULT_ALLOWED_MEDIA_TYPES, AttachmentConfig
from quotedesk.core.exceptions import NotFoundError, QuoteDeskError, StorageWriteError, TransformError, ValidationError
from quotedesk.core.logging import get_logger
from quotedesk.core.models import Attachment, AttachmentUpload, UploadOutcome
from quotedesk.core.storage.imaging import IMAGE_MEDIA_TYPES, ImageTransform, PillowImageTransform
from quotedesk.core.storage.ports import StructuredStore

logger = get_logger(__name__)

DEFAULT_MAX_SIZE = 10 * 1024 * 1024

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")

# shared by every store in the process
_SEQUENCE = itertools.count(1)


def new_attachment_id(clock: Clock) -> str:
    """Return ``att_<epoch millis>_<sequence>_<random>``."""
    millis = int(clock.now().timestamp() * 1000)
    return f"att_{millis}_{next(_SEQUENCE):x}_{secrets.token_hex(4)}"


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"


class BlobAttachmentStore:
    """Validates, transforms and persists attachment payloads.

    Uploads are checked against a media type allow-list and a size limit
    before anything touches storage. Images go through ``image_transform``;
    other payloads are stored as uploaded.
    """

    def __init__(
        self,
        structured: StructuredStore,
        *,
        allowed_media_types: Iterable[str] = DEFAULT_ALLOWED_MEDIA_TYPES,
        max_size: int = DEFAULT_MAX_SIZE,
        image_transform: ImageTransform | None = None,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.structured = structured
        self.allowed_media_types = frozenset(allowed_media_types)
        self.max_size = max_size
        self.image_transform = image_transform or PillowImageTransform()
        self.clock = clock or SystemClock()
        self._new_id = id_factory or (lambda: new_attachment_id(self.clock))
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @classmethod
    def from_config(
        cls,
        structured: StructuredStore,
        config: AttachmentConfig,
        clock: Clock | None = None,
    ) -> BlobAttachmentStore:
        return cls(
            structured,
            allowed_media_types=config.allowed_media_types,
            max_size=config.max_size,
            image_transform=PillowImageTransform(config.max_dimension, config.quality),
            clock=clock,
        )

    async def initialize(self) -> None:
        async with self._init_lock:
            if not self._initialized:
                await self.structured.initialize()
                self._initialized = True

    def validate(self, upload: AttachmentUpload) -> None:
        """Raise :class:`ValidationError` for a disallowed type or oversize payload."""
        if upload.media_type not in self.allowed_media_types:
            raise ValidationError(
                f"File type '{upload.media_type}' is not allowed",
                reason="type",
                filename=upload.name,
                details={"media_type": upload.media_type},
            )
        if upload.size > self.max_size:
            raise ValidationError(
                f"File exceeds the {format_file_size(self.max_size)} limit",
                reason="size",
                filename=upload.name,
                details={"size": upload.size, "max_size": self.max_size},
            )

    def _transform(self, upload: AttachmentUpload) -> bytes:
        if upload.media_type not in IMAGE_MEDIA_TYPES:
            return upload.payload
        try:
            return self.image_transform(upload.payload)
        except TransformError as exc:
            exc.filename = upload.name
            exc.details.setdefault("filename", upload.name)
            raise
        except Exception as exc:
            raise TransformError(f"Image transform failed: {exc}", filename=upload.name) from exc

    async def store(self, upload: AttachmentUpload) -> Attachment:
        """Validate, transform and persist one upload."""
        self.validate(upload)
        payload = self._transform(upload)
        await self.initialize()
        attachment = Attachment(
            id=self._new_id(),
            owner_id=upload.owner_id,
            parent_key=upload.parent_key,
            name=upload.name,
            media_type=upload.media_type,
            size=len(payload),
            original_size=upload.size,
            payload=payload,
            created_at=self.clock.now(),
            created_by=upload.created_by,
        )
        await self.structured.put_attachment(attachment)
        logger.bind(record_key=upload.parent_key).info(
            f"Stored attachment {attachment.id} ({format_file_size(attachment.size)})"
        )
        return attachment

    async def save(self, upload: AttachmentUpload) -> str:
        return (await self.store(upload)).id

    async def save_many(self, uploads: Sequence[AttachmentUpload]) -> list[UploadOutcome]:
        """Store uploads one after another; a failing file does not stop the rest."""
        outcomes: list[UploadOutcome] = []
        for upload in uploads:
            try:
                attachment = await self.store(upload)
            except QuoteDeskError as exc:
                logger.bind(record_key=upload.parent_key, error_code=exc.error_code).warning(
                    f"Upload of '{upload.name}' failed: {exc.message}"
                )
                outcomes.append(UploadOutcome(name=upload.name, error=exc))
            else:
                outcomes.append(UploadOutcome(name=upload.name, attachment=attachment))
        return outcomes

    async def get(self, attachment_id: str) -> Attachment:
        await self.initialize()
        attachment = await self.structured.get_attachment(attachment_id)
        if attachment is None:
            raise NotFoundError(f"Attachment '{attachment_id}' not found", kind="attachment", identifier=attachment_id)
        return attachment

    async def list_by_owner(self, owner_id: int, parent_key: str) -> list[Attachment]:
        await self.initialize()
        candidates = await self.structured.attachments_by_owner(owner_id)
        return [attachment for attachment in candidates if attachment.parent_key == parent_key]

    async def delete(self, attachment_id: str) -> bool:
        await self.initialize()
        deleted = await self.structured.delete_attachment(attachment_id)
        if deleted:
            logger.info(f"Deleted attachment {attachment_id}")
        return deleted

    async def export(self, attachment_id: str, directory: str | Path) -> Path:
        """Write an attachment's payload into ``directory`` under its display name."""
        attachment = await self.get(attachment_id)
        target_dir = Path(directory)
        target = target_dir / Path(attachment.name).name
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(attachment.payload)
        except OSError as exc:
            raise StorageWriteError(f"Cannot write '{target}': {exc}", tier="filesystem", retryable=False) from exc
        return target


__all__ = ["DEFAULT_MAX_SIZE", "BlobAttachmentStore", "format_file_size", "new_attachment_id"]
