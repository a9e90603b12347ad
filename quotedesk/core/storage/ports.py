"""Storage ports.

Two tiers back a sourcing record:

* the structured store keeps one JSON document per work-order key plus the
  attachment blobs, indexed by owning vendor id;
* the mirror store is a flat array of workflow documents keyed by ``id``
  that other screens read in bulk. It embeds a copy of the record under
  ``sourcingData``.

Adapters raise :class:`~quotedesk.core.exceptions.StorageWriteError` when a
tier is unavailable or rejects a write.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from quotedesk.core.models import Attachment


class StructuredStore(ABC):
    """Keyed record documents and attachment blobs."""

    @abstractmethod
    async def initialize(self) -> None:
        """Open the store; calling it again is a no-op."""
        ...

    @abstractmethod
    async def put_record(self, key: str, document: Mapping[str, Any]) -> None:
        """Insert or replace the record document stored under ``key``."""
        ...

    @abstractmethod
    async def get_record(self, key: str) -> dict[str, Any] | None:
        """Return the record document or ``None``."""
        ...

    @abstractmethod
    async def put_attachment(self, attachment: Attachment) -> None:
        """Store a new attachment."""
        ...

    @abstractmethod
    async def get_attachment(self, attachment_id: str) -> Attachment | None:
        """Return an attachment or ``None``."""
        ...

    @abstractmethod
    async def attachments_by_owner(self, owner_id: int) -> list[Attachment]:
        """Return every attachment of an owner, oldest first."""
        ...

    @abstractmethod
    async def delete_attachment(self, attachment_id: str) -> bool:
        """Delete an attachment, returning whether it existed."""
        ...

    async def close(self) -> None:
        """Release resources."""
        return None


class MirrorStore(ABC):
    """Array of workflow documents keyed by ``id``."""

    @abstractmethod
    async def initialize(self) -> None:
        ...

    @abstractmethod
    async def get_entry(self, key: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def list_entries(self) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    async def put_entry(self, entry: Mapping[str, Any]) -> None:
        """Insert or replace a whole document. It must carry an ``id``."""
        ...

    @abstractmethod
    async def update_entry(self, key: str, changes: Mapping[str, Any]) -> bool:
        """Merge ``changes`` into an existing document.

        Returns ``False`` without writing when no document has that key.
        """
        ...


__all__ = ["MirrorStore", "StructuredStore"]
