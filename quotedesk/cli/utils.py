"""Utility helpers shared across CLI commands."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

import typer

from quotedesk.core.config.settings import ConfigManager, QuoteDeskConfig
from quotedesk.core.exceptions import (
    ConfigurationError,
    InvariantError,
    NotFoundError,
    QuoteDeskError,
    SaveInProgressError,
    StorageWriteError,
    TransformError,
    ValidationError,
    error_response_from,
)
from quotedesk.core.logging import configure_logging

from .constants import NOT_FOUND_EXIT_CODE, STORAGE_EXIT_CODE, SYSTEM_EXIT_CODE, VALIDATION_EXIT_CODE
from .formatters import create_formatter


@dataclass(slots=True)
class CLIOptions:
    """Resolved options derived from the Typer context."""

    format: str = "table"
    output_path: Path | None = None
    no_color: bool = False
    config_path: Path | None = None
    log_level: str | None = None


def get_cli_options(ctx: typer.Context) -> CLIOptions:
    """Extract :class:`CLIOptions` from the Typer context object."""

    ctx.ensure_object(dict)
    data = ctx.obj or {}
    return CLIOptions(
        format=str(data.get("format", "table")),
        output_path=data.get("output_path"),
        no_color=bool(data.get("no_color", False)),
        config_path=data.get("config_path"),
        log_level=data.get("log_level"),
    )


def load_config(ctx: typer.Context) -> QuoteDeskConfig:
    """Load the configuration named by ``--config`` (or the default one).

    Logging is reconfigured from its ``logging`` section; ``--log-level``
    overrides the configured level.
    """

    options = get_cli_options(ctx)
    try:
        config = ConfigManager(options.config_path).get_config()
    except ConfigurationError as error:
        report_error(error)
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from error
    configure_logging(
        (options.log_level or config.logging.level).upper(),
        file_output=config.logging.file is not None,
        file_path=config.logging.file,
    )
    return config


def write_rows(ctx: typer.Context, rows: Sequence[Mapping[str, object]], columns: Sequence[str]) -> None:
    """Render ``rows`` to stdout or the ``--output`` file.

    Called once a command has its rows, so a failed command never creates
    or truncates the output file.
    """

    options = get_cli_options(ctx)
    formatter = create_formatter(options.format, no_color=options.no_color)
    if options.output_path is None:
        formatter.render(rows, stream=sys.stdout, columns=columns)
        return
    try:
        with open(options.output_path, "w", encoding="utf-8") as stream:
            formatter.render(rows, stream=stream, columns=columns)
    except OSError as exc:
        emit_error(f"Unable to write '{options.output_path}': {exc}", "OUTPUT_WRITE_ERROR")
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc


def emit_error(message: str, code: str, *, details: Mapping[str, object] | None = None) -> None:
    """Print a structured error payload to stderr."""

    payload: dict[str, object] = {"code": code, "message": message}
    if details:
        payload["details"] = _sanitize_details(details)
    typer.echo(json.dumps(payload, ensure_ascii=False, default=str), err=True)


def report_error(error: QuoteDeskError) -> None:
    """Print the standard error response of ``error`` to stderr."""

    response = error_response_from(error)
    response["error"]["details"] = _sanitize_details(response["error"]["details"])
    typer.echo(json.dumps(response, ensure_ascii=False, default=str), err=True)


def exit_code_for(error: QuoteDeskError) -> int:
    if isinstance(error, (ValidationError, TransformError, InvariantError, ConfigurationError)):
        return VALIDATION_EXIT_CODE
    if isinstance(error, NotFoundError):
        return NOT_FOUND_EXIT_CODE
    if isinstance(error, (StorageWriteError, SaveInProgressError)):
        return STORAGE_EXIT_CODE
    return SYSTEM_EXIT_CODE


def fail(error: QuoteDeskError) -> typer.Exit:
    """Report ``error`` and return the matching :class:`typer.Exit` to raise."""

    report_error(error)
    return typer.Exit(code=exit_code_for(error))


def _sanitize_details(details: Mapping[str, object]) -> dict[str, object]:
    sanitized: dict[str, object] = {}
    for key, value in details.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            sanitized[key] = value
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            sanitized[key] = [str(item) for item in value]
        else:
            sanitized[key] = str(value)
    return sanitized


__all__ = [
    "CLIOptions",
    "emit_error",
    "exit_code_for",
    "fail",
    "get_cli_options",
    "load_config",
    "report_error",
    "write_rows",
]
