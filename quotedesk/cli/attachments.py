"""Attachment commands."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Mapping

import typer

from quotedesk.core.models import Attachment
from quotedesk.core.services.session import SourcingSession
from quotedesk.core.storage import format_file_size

from . import runtime
from .constants import VALIDATION_EXIT_CODE
from .utils import emit_error, write_rows

attachments_app = typer.Typer(help="Attachment operations.")

ATTACHMENT_COLUMNS = ["id", "name", "media_type", "size", "original_size", "created_at", "created_by"]
UPLOAD_COLUMNS = ["name", "status", "id", "size", "error"]

FALLBACK_MEDIA_TYPE = "application/octet-stream"


def register(app: typer.Typer) -> None:
    """Register the attachment command group on the root application."""

    app.add_typer(attachments_app, name="attachments", help="Manage vendor attachments")


def _attachment_row(attachment: Attachment) -> Mapping[str, object]:
    return {
        "id": attachment.id,
        "name": attachment.name,
        "media_type": attachment.media_type,
        "size": format_file_size(attachment.size),
        "original_size": format_file_size(attachment.original_size),
        "created_at": attachment.created_at.isoformat(),
        "created_by": attachment.created_by,
    }


def _read_files(paths: list[Path]) -> list[tuple[str, str, bytes]]:
    files = []
    for path in paths:
        media_type = mimetypes.guess_type(path.name)[0] or FALLBACK_MEDIA_TYPE
        files.append((path.name, media_type, path.read_bytes()))
    return files


@attachments_app.command("add")
def add_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    paths: list[Path] = typer.Argument(..., help="Files to attach."),
    vendor: int | None = typer.Option(None, "--vendor", help="Vendor id (active vendor by default)."),
) -> None:
    """Upload files for a vendor and save the record."""

    try:
        files = _read_files(paths)
    except OSError as exc:
        emit_error(str(exc), "FILE_READ_ERROR")
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from exc

    async def action(session: SourcingSession) -> list[Mapping[str, object]]:
        outcomes = await session.upload(files, vendor_id=vendor)
        if any(outcome.ok for outcome in outcomes):
            await session.save()
        return [
            {
                "name": outcome.name,
                "status": outcome.status,
                "id": outcome.attachment.id if outcome.attachment else None,
                "size": format_file_size(outcome.attachment.size) if outcome.attachment else None,
                "error": outcome.error.error_code if outcome.error else None,
            }
            for outcome in outcomes
        ]

    rows = runtime.run_session(ctx, key, action)
    write_rows(ctx, rows, UPLOAD_COLUMNS)
    if any(row["status"] == "error" for row in rows):
        raise typer.Exit(code=VALIDATION_EXIT_CODE)


@attachments_app.command("list")
def list_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    vendor: int | None = typer.Option(None, "--vendor", help="Vendor id (active vendor by default)."),
) -> None:
    """List the attachments stored for a vendor."""

    async def action(session: SourcingSession) -> list[Mapping[str, object]]:
        return [_attachment_row(item) for item in await session.list_attachments(vendor)]

    rows = runtime.run_session(ctx, key, action)
    write_rows(ctx, rows, ATTACHMENT_COLUMNS)


@attachments_app.command("rm")
def remove_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    attachment_id: str = typer.Argument(..., help="Attachment id."),
    vendor: int | None = typer.Option(None, "--vendor", help="Vendor id (active vendor by default)."),
) -> None:
    """Delete an attachment and drop it from the vendor."""

    async def action(session: SourcingSession) -> None:
        await session.remove_attachment(attachment_id, vendor_id=vendor)
        await session.save()

    runtime.run_session(ctx, key, action)
    typer.echo(f"Removed {attachment_id}")


@attachments_app.command("get")
def get_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    attachment_id: str = typer.Argument(..., help="Attachment id."),
    dest: Path = typer.Option(Path("."), "--dest", help="Directory to write the file into."),
) -> None:
    """Write an attachment to disk."""

    async def action(session: SourcingSession) -> Path:
        return await session.download_attachment(attachment_id, dest)

    target = runtime.run_session(ctx, key, action)
    typer.echo(str(target))


__all__ = ["attachments_app", "register"]
