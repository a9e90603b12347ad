"""Vendor pricing aggregation.

Totals are exact ``Decimal`` sums of the coalesced inputs::

    cost        = quantity * unit price
    subtotal    = sum(cost)
    gross_total = subtotal + sum(additive adjustments)
    net_total   = gross_total - sum(discounts)

Blank or non-numeric inputs count as zero; the raw values stay on the model.
Rounding happens only in :func:`format_amount`.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from quotedesk.core.models import ADDITIVE_FIELDS, DISCOUNT_FIELDS, LineItem, PricingBlock, SourcingRecord, VendorQuote
from quotedesk.core.models.sourcing import ZERO, RawValue

CENT = Decimal("0.01")


def coerce_amount(value: RawValue) -> Decimal:
    """Numeric value of a form input, ``0`` when blank or not a finite number."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        return ZERO
    return amount if amount.is_finite() else ZERO


def format_amount(value: Decimal | RawValue) -> str:
    """Two decimal display form, half-up rounded."""
    amount = value if isinstance(value, Decimal) else coerce_amount(value)
    return str(amount.quantize(CENT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricingTotals:
    subtotal: Decimal
    gross_total: Decimal
    net_total: Decimal


@dataclass(frozen=True)
class VendorStanding:
    """One row of a vendor comparison."""

    rank: int
    vendor_id: int
    vendor_name: str
    is_primary: bool
    net_total: Decimal
    difference: Decimal


class VendorAggregateEngine:
    """Pure computation of derived pricing fields."""

    def line_cost(self, item: LineItem) -> Decimal:
        return coerce_amount(item.quantity) * coerce_amount(item.unit_price)

    def totals(self, pricing: PricingBlock) -> PricingTotals:
        subtotal = sum((self.line_cost(item) for item in pricing.line_items.values()), ZERO)
        additive = sum((coerce_amount(getattr(pricing, name)) for name in ADDITIVE_FIELDS), ZERO)
        discounts = sum((coerce_amount(getattr(pricing, name)) for name in DISCOUNT_FIELDS), ZERO)
        gross_total = subtotal + additive
        return PricingTotals(subtotal=subtotal, gross_total=gross_total, net_total=gross_total - discounts)

    def recompute_pricing(self, pricing: PricingBlock) -> PricingBlock:
        line_items = {
            item_id: item.model_copy(update={"cost": self.line_cost(item)})
            for item_id, item in pricing.line_items.items()
        }
        totals = self.totals(pricing)
        return pricing.model_copy(
            update={
                "line_items": line_items,
                "subtotal": totals.subtotal,
                "gross_total": totals.gross_total,
                "net_total": totals.net_total,
            }
        )

    def recompute(self, vendor: VendorQuote) -> VendorQuote:
        """Return a copy of ``vendor`` with every derived pricing field refreshed."""
        return vendor.model_copy(update={"pricing": self.recompute_pricing(vendor.pricing)}, deep=True)

    def recompute_all(self, record: SourcingRecord) -> SourcingRecord:
        vendors = {vendor_id: self.recompute(vendor) for vendor_id, vendor in record.vendors.items()}
        return record.model_copy(update={"vendors": vendors})

    def compare(self, record: SourcingRecord) -> list[VendorStanding]:
        """Rank vendors by net total, cheapest first; ties keep vendor order."""
        rows = [
            (self.totals(vendor.pricing).net_total, position, vendor)
            for position, vendor in enumerate(record.vendors.values())
        ]
        ordered = sorted(rows, key=lambda row: (row[0], row[1]))
        lowest = ordered[0][0]
        return [
            VendorStanding(
                rank=rank,
                vendor_id=vendor.id,
                vendor_name=vendor.vendor_name,
                is_primary=vendor.is_primary,
                net_total=net_total,
                difference=net_total - lowest,
            )
            for rank, (net_total, _, vendor) in enumerate(ordered, start=1)
        ]


__all__ = [
    "PricingTotals",
    "VendorAggregateEngine",
    "VendorStanding",
    "coerce_amount",
    "format_amount",
]
