"""Storage layer: ports, adapters and the record/attachment stores."""

from quotedesk.core.storage.attachments import BlobAttachmentStore, format_file_size, new_attachment_id
from quotedesk.core.storage.imaging import ImageTransform, PillowImageTransform, identity_transform
from quotedesk.core.storage.mirror import InMemoryMirrorStore, JsonFileMirrorStore
from quotedesk.core.storage.ports import MirrorStore, StructuredStore
from quotedesk.core.storage.records import (
    DualWritePolicy,
    LoadedRecord,
    RecordOrigin,
    SourcingRecordStore,
    StructuredOnlyPolicy,
    WritePolicy,
    WriteReport,
)
from quotedesk.core.storage.structured import DuckDBStructuredStore

__all__ = [
    "BlobAttachmentStore",
    "DualWritePolicy",
    "DuckDBStructuredStore",
    "ImageTransform",
    "InMemoryMirrorStore",
    "JsonFileMirrorStore",
    "LoadedRecord",
    "MirrorStore",
    "PillowImageTransform",
    "RecordOrigin",
    "SourcingRecordStore",
    "StructuredOnlyPolicy",
    "StructuredStore",
    "WritePolicy",
    "WriteReport",
    "format_file_size",
    "identity_transform",
    "new_attachment_id",
]
