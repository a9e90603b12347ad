from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from quotedesk.core.exceptions import DerivedFieldError
from quotedesk.core.models import DETAIL_FIELDS, LineItem, PricingBlock, SourcingRecord, VendorQuote, empty_details


def _legacy_document() -> dict[str, object]:
    return {
        "vendors": [
            {
                "id": 1,
                "vendorName": "Acme",
                "isPrimary": False,
                "sourcingInfo": {"vendorName": "Acme", "remarks": "", "attachments": ["att_1"]},
                "pricing": {
                    "lineItems": [{"id": 1, "description": "Pump", "qty": "2", "unitPrice": "10", "cost": "20"}],
                    "taxAmount": "2",
                    "subtotal": "20",
                    "grandTotal": "22",
                    "finalGrandTotal": "22",
                },
            },
            {"id": 3, "vendorName": "Globex", "isPrimary": False},
        ],
        "activeVendorId": 7,
    }


class TestSourcingRecordDocument:
    def test_legacy_document_is_normalised(self) -> None:
        record = SourcingRecord.from_document(_legacy_document())

        assert list(record.vendors) == [1, 3]
        assert record.primary_vendor.id == 1
        assert record.active_vendor_id == 1
        assert record.vendors[1].attachments == ["att_1"]
        assert "attachments" not in record.vendors[1].details
        item = record.vendors[1].line_items[1]
        assert item.quantity == "2"
        assert item.unit_price == "10"
        assert record.vendors[1].pricing.gross_total == Decimal("22")

    def test_document_uses_workflow_field_names(self) -> None:
        document = SourcingRecord.from_document(_legacy_document()).to_document()

        vendor = document["vendors"][0]
        assert vendor["vendorName"] == "Acme"
        assert vendor["isPrimary"] is True
        assert vendor["sourcingInfo"]["attachments"] == ["att_1"]
        assert "attachments" not in vendor
        pricing = vendor["pricing"]
        assert pricing["lineItems"][0]["qty"] == "2"
        assert pricing["lineItems"][0]["cost"] == "20"
        assert pricing["grandTotal"] == "22"
        assert pricing["finalGrandTotal"] == "22"
        assert document["activeVendorId"] == 1

    def test_workflow_document_carries_numeric_totals(self) -> None:
        document = SourcingRecord.from_document(_legacy_document()).to_workflow_document()

        pricing = document["vendors"][0]["pricing"]
        assert pricing["lineItems"][0]["cost"] == 20
        assert pricing["subtotal"] == 20
        assert pricing["grandTotal"] == 22
        assert pricing["finalGrandTotal"] == 22
        assert pricing["lineItems"][0]["qty"] == "2"
        assert SourcingRecord.from_document(document) == SourcingRecord.from_document(_legacy_document())

    def test_document_survives_a_round_trip(self) -> None:
        record = SourcingRecord.from_document(_legacy_document())

        assert SourcingRecord.from_document(record.to_document()) == record

    def test_several_primaries_keep_the_first(self) -> None:
        record = SourcingRecord(
            vendors=[VendorQuote(id=2, is_primary=True), VendorQuote(id=5, is_primary=True)],
        )

        assert [vendor.is_primary for vendor in record.vendors.values()] == [True, False]
        assert record.active_vendor.id == 2

    def test_record_without_vendors_is_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            SourcingRecord(vendors=[])


class TestPricingBlock:
    def test_defaults_to_one_empty_line_item(self) -> None:
        pricing = PricingBlock()

        assert list(pricing.line_items) == [1]
        assert pricing.line_items[1].quantity == ""
        assert pricing.discount1 == 0

    def test_empty_line_items_are_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            PricingBlock(line_items=[])

    @pytest.mark.parametrize("field", ["subtotal", "gross_total", "net_total"])
    def test_totals_cannot_be_assigned(self, field: str) -> None:
        pricing = PricingBlock()

        with pytest.raises(DerivedFieldError) as exc_info:
            setattr(pricing, field, Decimal("1"))

        assert exc_info.value.field == field

    def test_line_item_cost_cannot_be_assigned(self) -> None:
        item = LineItem(id=1, qty="1", unit_price="3")

        with pytest.raises(DerivedFieldError):
            item.cost = Decimal("3")

        item.description = "Valve"
        assert item.description == "Valve"


def test_empty_details_lists_every_catalog_field() -> None:
    details = empty_details()

    assert set(details) == set(DETAIL_FIELDS)
    assert all(value == "" for value in details.values())
    assert DETAIL_FIELDS["remainingDays"].read_only
