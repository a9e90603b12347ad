"""DuckDB backed structured store."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import duckdb
from duckdb import DuckDBPyConnection

from quotedesk.core.exceptions import StorageWriteError
from quotedesk.core.logging import get_logger
from quotedesk.core.models import Attachment
from quotedesk.core.storage.duckdb_factory import DuckDBFactoryConfig, QuoteDeskDuckDBFactory
from quotedesk.core.storage.ports import StructuredStore
from quotedesk.core.storage.schema import ATTACHMENTS_TABLE, ensure_structured_tables

logger = get_logger(__name__)

TIER = "structured"

_ATTACHMENT_COLUMNS = ", ".join(ATTACHMENTS_TABLE.column_names)


class DuckDBStructuredStore(StructuredStore):
    """Records and attachments in two DuckDB tables on one connection."""

    def __init__(
        self,
        database: str | Path = ":memory:",
        factory: QuoteDeskDuckDBFactory | None = None,
    ) -> None:
        self._factory = factory or QuoteDeskDuckDBFactory(DuckDBFactoryConfig(database=database))
        self._conn: DuckDBPyConnection | None = None
        self._lock = asyncio.Lock()

    @property
    def database(self) -> str:
        return self._factory.database

    def is_connected(self) -> bool:
        return self._conn is not None

    async def initialize(self) -> None:
        async with self._lock:
            if self._conn is not None:
                return
            try:
                conn = self._factory.create_connection()
                ensure_structured_tables(conn)
            except duckdb.Error as exc:
                raise StorageWriteError(f"Cannot open structured store: {exc}", tier=TIER) from exc
            self._conn = conn
            logger.debug(f"Structured store ready at {self.database}")

    def _connection(self) -> DuckDBPyConnection:
        if self._conn is None:
            raise StorageWriteError("Structured store is not initialized", tier=TIER, retryable=False)
        return self._conn

    async def put_record(self, key: str, document: Mapping[str, Any]) -> None:
        conn = self._connection()
        payload = json.dumps(document)
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO sourcing_records (record_key, payload, last_updated)
                VALUES (?, ?, ?)
                """,
                [key, payload, datetime.now(UTC).isoformat()],
            )
        except duckdb.Error as exc:
            raise StorageWriteError(f"Record write rejected: {exc}", tier=TIER) from exc

    async def get_record(self, key: str) -> dict[str, Any] | None:
        conn = self._connection()
        try:
            row = conn.execute("SELECT payload FROM sourcing_records WHERE record_key = ?", [key]).fetchone()
        except duckdb.Error as exc:
            raise StorageWriteError(f"Record read failed: {exc}", tier=TIER) from exc
        if row is None:
            return None
        return json.loads(row[0])

    async def put_attachment(self, attachment: Attachment) -> None:
        conn = self._connection()
        try:
            conn.execute(
                f"INSERT INTO attachments ({_ATTACHMENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    attachment.id,
                    attachment.owner_id,
                    attachment.parent_key,
                    attachment.name,
                    attachment.media_type,
                    attachment.size,
                    attachment.original_size,
                    attachment.payload,
                    attachment.created_at.isoformat(),
                    attachment.created_by,
                ],
            )
        except duckdb.Error as exc:
            raise StorageWriteError(f"Attachment write rejected: {exc}", tier=TIER) from exc

    async def get_attachment(self, attachment_id: str) -> Attachment | None:
        conn = self._connection()
        try:
            row = conn.execute(
                f"SELECT {_ATTACHMENT_COLUMNS} FROM attachments WHERE id = ?", [attachment_id]
            ).fetchone()
        except duckdb.Error as exc:
            raise StorageWriteError(f"Attachment read failed: {exc}", tier=TIER) from exc
        return self._row_to_attachment(row) if row else None

    async def attachments_by_owner(self, owner_id: int) -> list[Attachment]:
        conn = self._connection()
        try:
            rows = conn.execute(
                f"SELECT {_ATTACHMENT_COLUMNS} FROM attachments WHERE owner_id = ? ORDER BY created_at, id",
                [owner_id],
            ).fetchall()
        except duckdb.Error as exc:
            raise StorageWriteError(f"Attachment read failed: {exc}", tier=TIER) from exc
        return [self._row_to_attachment(row) for row in rows]

    async def delete_attachment(self, attachment_id: str) -> bool:
        conn = self._connection()
        try:
            row = conn.execute("SELECT COUNT(*) FROM attachments WHERE id = ?", [attachment_id]).fetchone()
            if not row or not row[0]:
                return False
            conn.execute("DELETE FROM attachments WHERE id = ?", [attachment_id])
        except duckdb.Error as exc:
            raise StorageWriteError(f"Attachment delete rejected: {exc}", tier=TIER) from exc
        return True

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @staticmethod
    def _row_to_attachment(row: tuple[Any, ...]) -> Attachment:
        record = dict(zip(ATTACHMENTS_TABLE.column_names, row, strict=True))
        record["payload"] = bytes(record["payload"])
        record["created_at"] = datetime.fromisoformat(record["created_at"])
        record["created_by"] = record["created_by"] or "unknown"
        return Attachment.model_validate(record)


__all__ = ["DuckDBStructuredStore"]
