"""Vendor set management.

Every mutator takes a record and returns an updated deep copy, so a call
that raises leaves the caller's record untouched. Pricing mutations refresh
the derived totals of the touched vendor only.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import UTC, date, datetime

from pydantic.alias_generators import to_camel

from quotedesk.core.clock import Clock, SystemClock
from quotedesk.core.exceptions import (
    DerivedFieldError,
    InvariantError,
    MinimumCardinalityError,
    NotFoundError,
    UnknownFieldError,
    ValidationError,
)
from quotedesk.core.logging import get_logger
from quotedesk.core.models import (
    ADJUSTMENT_FIELDS,
    DETAIL_FIELDS,
    FieldKind,
    LineItem,
    QuoteValidity,
    RawValue,
    SourcingRecord,
    VendorQuote,
)
from quotedesk.core.services.aggregate import VendorAggregateEngine

logger = get_logger(__name__)

SOURCING_INFO = "sourcingInfo"
PRICING = "pricing"

VALID_TILL = "quoteValidTill"
REMAINING_DAYS = "remainingDays"

_SECONDS_PER_DAY = 86400

_PRICING_NAMES: dict[str, str] = {
    **{name: name for name in ADJUSTMENT_FIELDS},
    **{to_camel(name): name for name in ADJUSTMENT_FIELDS},
}
_DERIVED_PRICING_NAMES = frozenset({"subtotal", "gross_total", "grandTotal", "net_total", "finalGrandTotal"})

_LINE_ITEM_NAMES: dict[str, str] = {
    "description": "description",
    "qty": "quantity",
    "quantity": "quantity",
    "unitPrice": "unit_price",
    "unit_price": "unit_price",
}


def parse_valid_till(value: RawValue) -> datetime | None:
    """Parse a validity date; date-only values mean midnight UTC."""
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(text[:10]), datetime.min.time())
        except ValueError:
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def remaining_days(valid_till: RawValue, now: datetime) -> str:
    """Whole days left until ``valid_till``, rounded up, never below ``"0"``.

    Blank or unparseable dates give ``""``.
    """
    parsed = parse_valid_till(valid_till)
    if parsed is None:
        return ""
    days = math.ceil((parsed - now).total_seconds() / _SECONDS_PER_DAY)
    return str(days) if days > 0 else "0"


class VendorSetManager:
    """CRUD over the vendors and line items of one sourcing record."""

    def __init__(self, engine: VendorAggregateEngine | None = None, clock: Clock | None = None) -> None:
        self.engine = engine or VendorAggregateEngine()
        self.clock = clock or SystemClock()

    # records

    def create_record(self, key: str | None = None) -> SourcingRecord:
        """Seed a record with one primary vendor and one empty line item."""
        vendor = self.engine.recompute(VendorQuote(id=1, vendor_name="Vendor 1", is_primary=True))
        if key:
            logger.bind(record_key=key).debug("Seeded new sourcing record")
        return SourcingRecord(vendors={1: vendor}, active_vendor_id=1)

    @staticmethod
    def vendor(record: SourcingRecord, vendor_id: int) -> VendorQuote:
        try:
            return record.vendors[vendor_id]
        except KeyError:
            raise NotFoundError(f"Vendor {vendor_id} not found", kind="vendor", identifier=vendor_id) from None

    def _edit(self, record: SourcingRecord, vendor_id: int | None = None) -> SourcingRecord:
        if vendor_id is not None:
            self.vendor(record, vendor_id)
        return record.model_copy(deep=True)

    def _recompute(self, record: SourcingRecord, vendor_id: int) -> SourcingRecord:
        record.vendors[vendor_id] = self.engine.recompute(record.vendors[vendor_id])
        return record

    # vendors

    def add_vendor(self, record: SourcingRecord) -> SourcingRecord:
        """Append ``Vendor <id>`` with id max+1 and make it active."""
        if not record.vendors:
            raise InvariantError("Sourcing record has no vendors")
        updated = self._edit(record)
        vendor_id = max(updated.vendors) + 1
        vendor = VendorQuote(id=vendor_id, vendor_name=f"Vendor {vendor_id}")
        updated.vendors[vendor_id] = self.engine.recompute(vendor)
        updated.active_vendor_id = vendor_id
        return updated

    def remove_vendor(self, record: SourcingRecord, vendor_id: int) -> SourcingRecord:
        """Remove a vendor. The first remaining vendor inherits the active and primary roles it held.

        Attachments referenced by the removed vendor are left in place.
        """
        self.vendor(record, vendor_id)
        if len(record.vendors) <= 1:
            raise MinimumCardinalityError("At least one vendor is required", collection="vendors")
        updated = self._edit(record)
        removed = updated.vendors.pop(vendor_id)
        first = next(iter(updated.vendors.values()))
        if removed.is_primary:
            first.is_primary = True
        if updated.active_vendor_id == vendor_id:
            updated.active_vendor_id = first.id
        return updated

    def set_primary(self, record: SourcingRecord, vendor_id: int) -> SourcingRecord:
        updated = self._edit(record, vendor_id)
        for vendor in updated.vendors.values():
            vendor.is_primary = vendor.id == vendor_id
        return updated

    def switch_vendor(self, record: SourcingRecord, vendor_id: int) -> SourcingRecord:
        updated = self._edit(record, vendor_id)
        updated.active_vendor_id = vendor_id
        return updated

    def rename_vendor(self, record: SourcingRecord, vendor_id: int, name: str) -> SourcingRecord:
        """Set the display name, mirrored into the ``vendorName`` detail field."""
        updated = self._edit(record, vendor_id)
        vendor = updated.vendors[vendor_id]
        vendor.vendor_name = name
        vendor.details["vendorName"] = name
        return updated

    def copy_vendor_data(self, record: SourcingRecord, from_id: int, to_id: int) -> SourcingRecord:
        """Copy details and pricing from one vendor onto another; attachments are not copied."""
        source = self.vendor(record, from_id)
        self.vendor(record, to_id)
        if from_id == to_id:
            return record
        updated = self._edit(record)
        target = updated.vendors[to_id]
        target.details = dict(source.details)
        target.attachments = []
        target.pricing = source.pricing.model_copy(deep=True)
        return self._recompute(updated, to_id)

    def set_attachments(self, record: SourcingRecord, vendor_id: int, attachment_ids: Iterable[str]) -> SourcingRecord:
        updated = self._edit(record, vendor_id)
        updated.vendors[vendor_id].attachments = list(attachment_ids)
        return updated

    # fields

    def update_field(
        self,
        record: SourcingRecord,
        vendor_id: int,
        section: str,
        field: str,
        value: RawValue,
    ) -> SourcingRecord:
        """Set one descriptive or pricing field.

        Args:
            record: record to update
            vendor_id: vendor to change
            section: ``"sourcingInfo"`` or ``"pricing"``
            field: field name; pricing accepts camelCase or snake_case
            value: raw form value, stored as given

        Raises:
            UnknownFieldError: the section does not have this field
            DerivedFieldError: the field is computed
            ValidationError: a choice field got a value outside its options
        """
        if section == SOURCING_INFO:
            return self._update_detail(record, vendor_id, field, value)
        if section == PRICING:
            return self._update_pricing(record, vendor_id, field, value)
        raise UnknownFieldError(section, field)

    def _update_detail(self, record: SourcingRecord, vendor_id: int, field: str, value: RawValue) -> SourcingRecord:
        definition = DETAIL_FIELDS.get(field)
        if definition is None:
            raise UnknownFieldError(SOURCING_INFO, field)
        if definition.read_only:
            raise DerivedFieldError(field)
        if definition.kind is FieldKind.CHOICE and value not in ("", None) and value not in definition.options:
            raise ValidationError(
                f"'{value}' is not a valid choice for {field}",
                reason="choice",
                details={"field": field, "options": list(definition.options)},
            )
        updated = self._edit(record, vendor_id)
        details = updated.vendors[vendor_id].details
        details[field] = value
        if field == VALID_TILL:
            details[REMAINING_DAYS] = remaining_days(value, self.clock.now())
        return updated

    def _update_pricing(self, record: SourcingRecord, vendor_id: int, field: str, value: RawValue) -> SourcingRecord:
        if field in _DERIVED_PRICING_NAMES:
            raise DerivedFieldError(field)
        name = _PRICING_NAMES.get(field)
        if name is None:
            raise UnknownFieldError(PRICING, field)
        updated = self._edit(record, vendor_id)
        vendor = updated.vendors[vendor_id]
        vendor.pricing = vendor.pricing.model_copy(update={name: value})
        return self._recompute(updated, vendor_id)

    # line items

    def add_line_item(self, record: SourcingRecord, vendor_id: int) -> SourcingRecord:
        updated = self._edit(record, vendor_id)
        items = updated.vendors[vendor_id].pricing.line_items
        item_id = max(items) + 1
        items[item_id] = LineItem(id=item_id)
        return self._recompute(updated, vendor_id)

    def update_line_item(
        self,
        record: SourcingRecord,
        vendor_id: int,
        item_id: int,
        field: str,
        value: RawValue,
    ) -> SourcingRecord:
        if field == "cost":
            raise DerivedFieldError(field)
        name = _LINE_ITEM_NAMES.get(field)
        if name is None:
            raise UnknownFieldError("lineItems", field)
        self._line_item(record, vendor_id, item_id)
        updated = self._edit(record)
        items = updated.vendors[vendor_id].pricing.line_items
        items[item_id] = items[item_id].model_copy(update={name: value})
        return self._recompute(updated, vendor_id)

    def remove_line_item(self, record: SourcingRecord, vendor_id: int, item_id: int) -> SourcingRecord:
        self._line_item(record, vendor_id, item_id)
        if len(record.vendors[vendor_id].pricing.line_items) <= 1:
            raise MinimumCardinalityError("At least one line item is required", collection="lineItems")
        updated = self._edit(record)
        del updated.vendors[vendor_id].pricing.line_items[item_id]
        return self._recompute(updated, vendor_id)

    def _line_item(self, record: SourcingRecord, vendor_id: int, item_id: int) -> LineItem:
        try:
            return self.vendor(record, vendor_id).pricing.line_items[item_id]
        except KeyError:
            raise NotFoundError(f"Line item {item_id} not found", kind="line_item", identifier=item_id) from None

    # validity

    def quote_validity(self, vendor: VendorQuote, now: datetime | None = None) -> QuoteValidity:
        """Classify a quote by its validity date; ``EXPIRED`` once no whole day remains."""
        days = remaining_days(vendor.details.get(VALID_TILL), now or self.clock.now())
        if not days:
            return QuoteValidity.UNKNOWN
        return QuoteValidity.VALID if days != "0" else QuoteValidity.EXPIRED


__all__ = [
    "PRICING",
    "SOURCING_INFO",
    "VendorSetManager",
    "parse_valid_till",
    "remaining_days",
]
