"""Helpers for creating configured DuckDB connections."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import duckdb
from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class DuckDBFactoryConfig:
    """Configuration applied to DuckDB connections produced by the factory."""

    database: str | Path = ":memory:"
    read_only: bool = False
    pragmas: Mapping[str, object] = field(default_factory=lambda: {"threads": 1})


class QuoteDeskDuckDBFactory:
    """Factory that yields configured DuckDB connections."""

    def __init__(self, config: DuckDBFactoryConfig | None = None) -> None:
        self._config = config or DuckDBFactoryConfig()

    @property
    def database(self) -> str:
        return str(self._config.database)

    def create_connection(self) -> DuckDBPyConnection:
        """Create and return a configured DuckDB connection."""

        database = self.database
        if database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(database=database, read_only=self._config.read_only)
        self._apply_pragmas(conn)
        return conn

    @contextmanager
    def connection(self) -> Iterator[DuckDBPyConnection]:
        """Context manager that yields a configured DuckDB connection."""

        conn = self.create_connection()
        try:
            yield conn
        finally:
            conn.close()

    def _apply_pragmas(self, conn: DuckDBPyConnection) -> None:
        for setting, value in self._config.pragmas.items():
            conn.execute(f"SET {setting}=?", [value])


__all__ = ["DuckDBFactoryConfig", "QuoteDeskDuckDBFactory"]
