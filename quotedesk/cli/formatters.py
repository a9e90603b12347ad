"""Output formatters for CLI commands.

Rows are flat mappings produced by the command modules. Money columns arrive
as raw decimals or pre-formatted strings and are always shown with two
decimals; the table view right-aligns them along with counts and ids.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence, TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table
from rich.text import Text

from quotedesk.core.services.aggregate import format_amount

MONEY_COLUMNS = frozenset({"subtotal", "gross_total", "net_total", "difference"})
COUNT_COLUMNS = frozenset({"rank", "vendor_id", "line_items", "attachments", "size", "original_size"})

# cell values highlighted in colour output
ALERT_VALUES = {"expired": "red", "error": "red", "unknown": "yellow"}

Row = Mapping[str, object]


def money_cell(value: object) -> str:
    """Two-decimal rendering of a money value; blanks stay blank."""
    if value is None or value == "":
        return "-"
    return format_amount(value)  # type: ignore[arg-type]


def plain_cell(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, Decimal):
        return format_amount(value)
    return str(value)


class OutputFormatter:
    """Base class for CLI output formatters."""

    name: str

    def render(self, rows: Sequence[Row], *, stream: TextIO, columns: Sequence[str]) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Vendor and attachment rows as a Rich table."""

    name: str = "table"
    no_color: bool = False

    def render(self, rows: Sequence[Row], *, stream: TextIO, columns: Sequence[str]) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color)
        if not rows:
            console.print("Nothing to show.")
            return

        table = Table(box=SIMPLE, header_style="" if self.no_color else "bold")
        for column in columns:
            right = column in MONEY_COLUMNS or column in COUNT_COLUMNS
            table.add_column(column, justify="right" if right else "left", no_wrap=column in MONEY_COLUMNS)
        for row in rows:
            table.add_row(*(self._cell(column, row.get(column)) for column in columns))
        console.print(table)

    def _cell(self, column: str, value: object) -> Text:
        text = money_cell(value) if column in MONEY_COLUMNS else plain_cell(value)
        style = None if self.no_color else ALERT_VALUES.get(text)
        return Text(text, style=style or "")


@dataclass(slots=True)
class JSONLFormatter(OutputFormatter):
    """One JSON object per row; money columns as two-decimal strings."""

    name: str = "jsonl"

    def render(self, rows: Sequence[Row], *, stream: TextIO, columns: Sequence[str]) -> None:
        for row in rows:
            record = {
                column: money_cell(row.get(column)) if isinstance(row.get(column), Decimal) else row.get(column)
                for column in columns
            }
            stream.write(json.dumps(record, ensure_ascii=False, default=str))
            stream.write("\n")
        stream.flush()


FORMATTERS = {"table": TableFormatter, "jsonl": JSONLFormatter}


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    """Instantiate a formatter by name."""

    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "jsonl":
        return JSONLFormatter()
    raise ValueError(f"Unsupported format '{name}'. Available formats: {', '.join(FORMATTERS)}.")


__all__ = [
    "JSONLFormatter",
    "MONEY_COLUMNS",
    "OutputFormatter",
    "TableFormatter",
    "create_formatter",
    "money_cell",
]
