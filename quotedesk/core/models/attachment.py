"""Attachment models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from quotedesk.core.exceptions import QuoteDeskError


class AttachmentUpload(BaseModel):
    """A file offered for upload, before validation."""

    name: str
    media_type: str
    payload: bytes = Field(repr=False)
    owner_id: int
    parent_key: str
    created_by: str = "unknown"

    @property
    def size(self) -> int:
        return len(self.payload)


class Attachment(BaseModel):
    """A stored attachment. ``size`` is post-transform, ``original_size`` as uploaded."""

    id: str
    owner_id: int
    parent_key: str
    name: str
    media_type: str
    size: int
    original_size: int
    payload: bytes = Field(repr=False)
    created_at: datetime
    created_by: str


@dataclass(frozen=True)
class UploadOutcome:
    """Per-file result of a multi-file upload."""

    name: str
    attachment: Attachment | None = None
    error: QuoteDeskError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        return "complete" if self.ok else "error"


__all__ = ["Attachment", "AttachmentUpload", "UploadOutcome"]
