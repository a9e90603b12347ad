"""Main entry point for the quotedesk command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from quotedesk.core.config.settings import LOG_LEVELS
from quotedesk.core.logging import configure_logging

from .attachments import register as register_attachment_commands
from .formatters import create_formatter
from .record import register as register_record_commands


def create_app() -> typer.Typer:
    """Create a Typer application instance for quotedesk."""

    app = typer.Typer(add_completion=False, help="quotedesk command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help="Configuration file (defaults to ~/.quotedesk/config.toml).",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Logging level for the JSON log stream (logging.level from the config by default).",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        level = log_level.strip().upper() if log_level else None
        if level is not None and level not in LOG_LEVELS:
            raise typer.BadParameter(f"Unknown level '{log_level}'", param_hint="--log-level")

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "config_path": config,
                "log_level": level,
                "no_color": no_color,
            }
        )
        configure_logging(level or "WARNING")

    register_record_commands(app)
    register_attachment_commands(app)
    return app


app = create_app()
