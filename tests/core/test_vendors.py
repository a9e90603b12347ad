from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from quotedesk.core.clock import FixedClock
from quotedesk.core.exceptions import (
    DerivedFieldError,
    MinimumCardinalityError,
    NotFoundError,
    UnknownFieldError,
    ValidationError,
)
from quotedesk.core.models import QuoteValidity, SourcingRecord
from quotedesk.core.services import PRICING, SOURCING_INFO, VendorSetManager, remaining_days


def _primaries(record: SourcingRecord) -> list[int]:
    return [vendor.id for vendor in record.vendors.values() if vendor.is_primary]


class TestVendorLifecycle:
    def test_create_record_seeds_one_primary_vendor(self, record: SourcingRecord) -> None:
        vendor = record.vendors[1]

        assert vendor.vendor_name == "Vendor 1"
        assert vendor.is_primary
        assert record.active_vendor_id == 1
        assert list(vendor.line_items) == [1]

    def test_add_vendor_uses_next_id_and_becomes_active(
        self, manager: VendorSetManager, record: SourcingRecord
    ) -> None:
        record = manager.add_vendor(manager.add_vendor(record))
        record = manager.remove_vendor(record, 2)

        updated = manager.add_vendor(record)

        assert list(updated.vendors) == [1, 3, 4]
        assert updated.vendors[4].vendor_name == "Vendor 4"
        assert updated.active_vendor_id == 4
        assert _primaries(updated) == [1]

    def test_mutators_do_not_touch_the_input(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        manager.add_vendor(record)
        manager.update_field(record, 1, PRICING, "taxAmount", "5")

        assert list(record.vendors) == [1]
        assert record.vendors[1].pricing.tax_amount == 0

    def test_last_vendor_cannot_be_removed(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(MinimumCardinalityError) as exc_info:
            manager.remove_vendor(record, 1)

        assert exc_info.value.collection == "vendors"
        assert list(record.vendors) == [1]

    def test_removing_primary_and_active_vendor_hands_roles_to_first(
        self, manager: VendorSetManager, record: SourcingRecord
    ) -> None:
        record = manager.add_vendor(manager.add_vendor(record))
        record = manager.set_primary(record, 3)

        updated = manager.remove_vendor(record, 3)

        assert _primaries(updated) == [1]
        assert updated.active_vendor_id == 1

    def test_removing_other_vendor_keeps_active(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        record = manager.switch_vendor(manager.add_vendor(manager.add_vendor(record)), 2)

        updated = manager.remove_vendor(record, 3)

        assert updated.active_vendor_id == 2
        assert _primaries(updated) == [1]

    def test_set_primary_keeps_exactly_one(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        record = manager.add_vendor(manager.add_vendor(record))

        updated = manager.set_primary(record, 2)

        assert _primaries(updated) == [2]

    def test_unknown_vendor_is_not_found(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            manager.switch_vendor(record, 9)

        assert exc_info.value.kind == "vendor"

    def test_rename_updates_detail_field(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        updated = manager.rename_vendor(record, 1, "Acme Industrial")

        assert updated.vendors[1].vendor_name == "Acme Industrial"
        assert updated.vendors[1].details["vendorName"] == "Acme Industrial"


class TestCopyVendorData:
    def test_copy_takes_details_and_pricing_but_not_attachments(
        self, manager: VendorSetManager, record: SourcingRecord
    ) -> None:
        record = manager.update_field(record, 1, SOURCING_INFO, "remarks", "fast delivery")
        record = manager.update_line_item(record, 1, 1, "qty", "4")
        record = manager.update_line_item(record, 1, 1, "unitPrice", "2.5")
        record = manager.set_attachments(record, 1, ["att_source"])
        record = manager.add_vendor(record)
        record = manager.set_attachments(record, 2, ["att_target"])

        updated = manager.copy_vendor_data(record, 1, 2)

        target = updated.vendors[2]
        assert target.details["remarks"] == "fast delivery"
        assert target.pricing.net_total == Decimal("10")
        assert target.attachments == []
        assert target.vendor_name == "Vendor 2"
        assert updated.vendors[1].attachments == ["att_source"]

    def test_copy_onto_itself_is_a_no_op(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        assert manager.copy_vendor_data(record, 1, 1) is record

    def test_copied_pricing_is_independent(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        record = manager.copy_vendor_data(manager.add_vendor(record), 1, 2)

        updated = manager.update_line_item(record, 2, 1, "qty", "3")

        assert updated.vendors[1].line_items[1].quantity == ""
        assert updated.vendors[2].line_items[1].quantity == "3"


class TestUpdateField:
    def test_pricing_update_recomputes_totals(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        record = manager.update_line_item(record, 1, 1, "quantity", "2")
        record = manager.update_line_item(record, 1, 1, "unit_price", "10")
        record = manager.add_line_item(record, 1)
        record = manager.update_line_item(record, 1, 2, "qty", "1")
        record = manager.update_line_item(record, 1, 2, "unitPrice", "5")
        record = manager.update_field(record, 1, PRICING, "taxAmount", "2")

        updated = manager.update_field(record, 1, PRICING, "discount1", "1")

        pricing = updated.vendors[1].pricing
        assert (pricing.subtotal, pricing.gross_total, pricing.net_total) == (
            Decimal("25"),
            Decimal("27"),
            Decimal("26"),
        )
        assert pricing.line_items[2].cost == Decimal("5")

    @pytest.mark.parametrize("field", ["subtotal", "grandTotal", "gross_total", "finalGrandTotal", "net_total"])
    def test_derived_pricing_fields_are_read_only(
        self, manager: VendorSetManager, record: SourcingRecord, field: str
    ) -> None:
        with pytest.raises(DerivedFieldError):
            manager.update_field(record, 1, PRICING, field, "100")

    def test_line_item_cost_is_read_only(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(DerivedFieldError):
            manager.update_line_item(record, 1, 1, "cost", "9")

    def test_remaining_days_is_read_only(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(DerivedFieldError):
            manager.update_field(record, 1, SOURCING_INFO, "remainingDays", "4")

    @pytest.mark.parametrize(
        ("section", "field"),
        [(SOURCING_INFO, "colour"), (PRICING, "shipping"), ("notes", "remarks")],
    )
    def test_unknown_fields_are_rejected(
        self, manager: VendorSetManager, record: SourcingRecord, section: str, field: str
    ) -> None:
        with pytest.raises(UnknownFieldError) as exc_info:
            manager.update_field(record, 1, section, field, "x")

        assert exc_info.value.field == field

    def test_choice_field_rejects_other_values(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(ValidationError) as exc_info:
            manager.update_field(record, 1, SOURCING_INFO, "riskAssessment", "Extreme")

        assert exc_info.value.error_code == "VALIDATION_ERROR"
        updated = manager.update_field(record, 1, SOURCING_INFO, "riskAssessment", "Low Risk")
        assert updated.vendors[1].details["riskAssessment"] == "Low Risk"
        cleared = manager.update_field(updated, 1, SOURCING_INFO, "riskAssessment", "")
        assert cleared.vendors[1].details["riskAssessment"] == ""

    def test_snake_and_camel_pricing_names_are_equivalent(
        self, manager: VendorSetManager, record: SourcingRecord
    ) -> None:
        camel = manager.update_field(record, 1, PRICING, "freightLogistics", "12")
        snake = manager.update_field(record, 1, PRICING, "freight_logistics", "12")

        assert camel.vendors[1].pricing == snake.vendors[1].pricing


class TestLineItems:
    def test_add_uses_next_id(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        record = manager.add_line_item(manager.add_line_item(record, 1), 1)
        record = manager.remove_line_item(record, 1, 2)

        updated = manager.add_line_item(record, 1)

        assert list(updated.vendors[1].line_items) == [1, 3, 4]

    def test_last_line_item_cannot_be_removed(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(MinimumCardinalityError) as exc_info:
            manager.remove_line_item(record, 1, 1)

        assert exc_info.value.collection == "lineItems"

    def test_removal_recomputes_totals(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        record = manager.update_line_item(record, 1, 1, "qty", "1")
        record = manager.update_line_item(record, 1, 1, "unitPrice", "7")
        record = manager.add_line_item(record, 1)
        record = manager.update_line_item(record, 1, 2, "qty", "1")
        record = manager.update_line_item(record, 1, 2, "unitPrice", "3")

        updated = manager.remove_line_item(record, 1, 1)

        assert updated.vendors[1].pricing.subtotal == Decimal("3")

    def test_missing_line_item_is_not_found(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            manager.update_line_item(record, 1, 5, "qty", "1")

        assert exc_info.value.kind == "line_item"

    def test_unknown_line_item_field(self, manager: VendorSetManager, record: SourcingRecord) -> None:
        with pytest.raises(UnknownFieldError) as exc_info:
            manager.update_line_item(record, 1, 1, "sku", "A-1")

        assert exc_info.value.section == "lineItems"


class TestQuoteValidity:
    @pytest.mark.parametrize(
        ("valid_till", "expected"),
        [
            ("2024-03-05", "4"),
            ("2024-03-01T18:00:00+00:00", "1"),
            ("2024-03-02", "1"),
            ("2024-03-01", "0"),
            ("2024-02-01", "0"),
            ("", ""),
            ("next week", ""),
            (None, ""),
        ],
    )
    def test_remaining_days(self, valid_till: str | None, expected: str) -> None:
        now = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)

        assert remaining_days(valid_till, now) == expected

    def test_setting_valid_till_sets_remaining_days(
        self, manager: VendorSetManager, record: SourcingRecord
    ) -> None:
        updated = manager.update_field(record, 1, SOURCING_INFO, "quoteValidTill", "2024-03-11")

        assert updated.vendors[1].details["remainingDays"] == "10"
        assert manager.quote_validity(updated.vendors[1]) is QuoteValidity.VALID

    def test_quote_expires_as_the_clock_moves(
        self, manager: VendorSetManager, record: SourcingRecord, clock: FixedClock
    ) -> None:
        vendor = manager.update_field(record, 1, SOURCING_INFO, "quoteValidTill", "2024-03-03").vendors[1]

        clock.advance(days=2)

        assert manager.quote_validity(vendor) is QuoteValidity.EXPIRED
        assert manager.quote_validity(record.vendors[1]) is QuoteValidity.UNKNOWN
