"""Sourcing record commands."""

from __future__ import annotations

from typing import Mapping

import typer

from quotedesk.core.models import SourcingRecord, VendorQuote
from quotedesk.core.services.session import SourcingSession

from . import runtime
from .utils import write_rows

record_app = typer.Typer(help="Sourcing record operations.")

VENDOR_COLUMNS = [
    "vendor_id",
    "vendor_name",
    "primary",
    "active",
    "line_items",
    "attachments",
    "subtotal",
    "gross_total",
    "net_total",
    "validity",
]
TOTAL_COLUMNS = ["vendor_id", "subtotal", "gross_total", "net_total"]
COMPARE_COLUMNS = ["rank", "vendor_id", "vendor_name", "primary", "net_total", "difference"]


def register(app: typer.Typer) -> None:
    """Register the record command group on the root application."""

    app.add_typer(record_app, name="record", help="Inspect and update sourcing records")


def _vendor_row(session: SourcingSession, vendor: VendorQuote) -> Mapping[str, object]:
    totals = session.manager.engine.totals(vendor.pricing)
    return {
        "vendor_id": vendor.id,
        "vendor_name": vendor.vendor_name,
        "primary": vendor.is_primary,
        "active": vendor.id == session.active_vendor_id,
        "line_items": len(vendor.line_items),
        "attachments": len(vendor.attachments),
        "subtotal": totals.subtotal,
        "gross_total": totals.gross_total,
        "net_total": totals.net_total,
        "validity": session.manager.quote_validity(vendor).value,
    }


@record_app.command("show")
def show_command(ctx: typer.Context, key: str = typer.Argument(..., help="Work-order key.")) -> None:
    """List the vendors of a record with their totals."""

    async def action(session: SourcingSession) -> list[Mapping[str, object]]:
        return [_vendor_row(session, vendor) for vendor in session.record.vendors.values()]

    rows = runtime.run_session(ctx, key, action)
    write_rows(ctx, rows, VENDOR_COLUMNS)


@record_app.command("totals")
def totals_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    vendor: int | None = typer.Option(None, "--vendor", help="Vendor id (active vendor by default)."),
) -> None:
    """Print the derived totals of one vendor."""

    async def action(session: SourcingSession) -> list[Mapping[str, object]]:
        vendor_id = vendor if vendor is not None else session.active_vendor_id
        totals = session.totals(vendor_id)
        return [
            {
                "vendor_id": vendor_id,
                "subtotal": totals.subtotal,
                "gross_total": totals.gross_total,
                "net_total": totals.net_total,
            }
        ]

    rows = runtime.run_session(ctx, key, action)
    write_rows(ctx, rows, TOTAL_COLUMNS)


@record_app.command("compare")
def compare_command(ctx: typer.Context, key: str = typer.Argument(..., help="Work-order key.")) -> None:
    """Rank vendors by net total."""

    async def action(session: SourcingSession) -> list[Mapping[str, object]]:
        return [
            {
                "rank": standing.rank,
                "vendor_id": standing.vendor_id,
                "vendor_name": standing.vendor_name,
                "primary": standing.is_primary,
                "net_total": standing.net_total,
                "difference": standing.difference,
            }
            for standing in session.compare()
        ]

    rows = runtime.run_session(ctx, key, action)
    write_rows(ctx, rows, COMPARE_COLUMNS)


@record_app.command("set")
def set_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    section: str = typer.Argument(..., help="sourcingInfo or pricing."),
    field: str = typer.Argument(..., help="Field name."),
    value: str = typer.Argument(..., help="New value; an empty string clears the field."),
    vendor: int | None = typer.Option(None, "--vendor", help="Vendor id (active vendor by default)."),
) -> None:
    """Update one field and save the record."""

    async def action(session: SourcingSession) -> list[Mapping[str, object]]:
        record: SourcingRecord = session.update_field(section, field, value, vendor_id=vendor)
        await session.save()
        target = record.vendors[vendor if vendor is not None else session.active_vendor_id]
        return [_vendor_row(session, target)]

    rows = runtime.run_session(ctx, key, action)
    write_rows(ctx, rows, VENDOR_COLUMNS)


@record_app.command("complete")
def complete_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    user: str | None = typer.Option(None, "--user", help="Completing user (session default otherwise)."),
) -> None:
    """Save the record and hand it over for approval."""

    async def action(session: SourcingSession) -> object:
        return await session.complete(user)

    outcome = runtime.run_session(ctx, key, action)
    typer.echo(f"{key}: {getattr(outcome, 'value', outcome)}")


@record_app.command("acknowledge")
def acknowledge_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Work-order key."),
    user: str | None = typer.Option(None, "--user", help="Acknowledging user."),
) -> None:
    """Mark a rejection of the record as seen."""

    async def action(session: SourcingSession) -> None:
        await session.acknowledge_rejection(user)

    runtime.run_session(ctx, key, action)
    typer.echo(f"{key}: rejection acknowledged")


__all__ = ["record_app", "register"]
