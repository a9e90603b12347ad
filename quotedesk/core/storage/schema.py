"""DuckDB table definitions for the structured store."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class ColumnDef:
    """Represents a DuckDB table column definition."""

    name: str
    data_type: str
    constraints: Sequence[str] = ()

    def render(self) -> str:
        parts = [self.name, self.data_type, *self.constraints]
        return " ".join(parts)


@dataclass(frozen=True)
class IndexDef:
    """Secondary index on a table."""

    name: str
    columns: Sequence[str]

    def create_ddl(self, table: str) -> str:
        return f"CREATE INDEX IF NOT EXISTS {self.name} ON {table}({', '.join(self.columns)})"


@dataclass(frozen=True)
class TableSchema:
    """Utility wrapper describing a DuckDB table schema."""

    name: str
    columns: Sequence[ColumnDef]
    primary_key: Sequence[str] = ()
    indexes: Sequence[IndexDef] = ()

    def create_ddl(self) -> str:
        column_defs: list[str] = [column.render() for column in self.columns]
        if self.primary_key:
            column_defs.append(f"PRIMARY KEY ({', '.join(self.primary_key)})")
        columns_sql = ",\n                ".join(column_defs)
        return f"""
            CREATE TABLE IF NOT EXISTS {self.name} (
                {columns_sql}
            )
            """.strip()

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]

    def ensure(self, conn: DuckDBPyConnection) -> None:
        """Create the table and its indexes if they do not exist."""

        conn.execute(self.create_ddl())
        for index in self.indexes:
            conn.execute(index.create_ddl(self.name))


SOURCING_RECORDS_TABLE = TableSchema(
    name="sourcing_records",
    columns=(
        ColumnDef("record_key", "VARCHAR", ("NOT NULL",)),
        ColumnDef("payload", "JSON", ("NOT NULL",)),
        ColumnDef("last_updated", "VARCHAR", ("NOT NULL",)),
    ),
    primary_key=("record_key",),
)

ATTACHMENTS_TABLE = TableSchema(
    name="attachments",
    columns=(
        ColumnDef("id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("owner_id", "BIGINT", ("NOT NULL",)),
        ColumnDef("parent_key", "VARCHAR", ("NOT NULL",)),
        ColumnDef("name", "VARCHAR", ("NOT NULL",)),
        ColumnDef("media_type", "VARCHAR", ("NOT NULL",)),
        ColumnDef("size", "BIGINT", ("NOT NULL",)),
        ColumnDef("original_size", "BIGINT", ("NOT NULL",)),
        ColumnDef("payload", "BLOB", ("NOT NULL",)),
        ColumnDef("created_at", "VARCHAR", ("NOT NULL",)),
        ColumnDef("created_by", "VARCHAR"),
    ),
    primary_key=("id",),
    indexes=(IndexDef("idx_attachments_owner", ("owner_id",)),),
)


def structured_tables() -> Sequence[TableSchema]:
    """Return the tables backing the structured store."""

    return (SOURCING_RECORDS_TABLE, ATTACHMENTS_TABLE)


def ensure_structured_tables(conn: DuckDBPyConnection) -> None:
    """Create every structured-store table on the provided connection."""

    for table in structured_tables():
        table.ensure(conn)


__all__ = [
    "ATTACHMENTS_TABLE",
    "SOURCING_RECORDS_TABLE",
    "ColumnDef",
    "IndexDef",
    "TableSchema",
    "ensure_structured_tables",
    "structured_tables",
]
