"""Sourcing record data models.

A :class:`SourcingRecord` holds the vendor quotes of one work order. Vendor and
line-item collections are ordered maps keyed by id; they serialize as arrays so
documents written by the legacy workflow screens decode unchanged.

Serialized names follow the workflow documents (``vendorName``, ``isPrimary``,
``sourcingInfo``, ``lineItems``, ``qty``, ``grandTotal``...). Always dump with
``by_alias=True`` when writing to a store.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    FieldSerializationInfo,
    SerializationInfo,
    field_serializer,
    field_validator,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

from quotedesk.core.exceptions import DerivedFieldError

RawValue = str | int | float | None
"""A form value as entered; blank and non-numeric values are kept verbatim."""


class FieldKind(str, Enum):
    """Input kind of a descriptive vendor field."""

    TEXT = "text"
    CHOICE = "choice"
    DATE = "date"
    NUMBER = "number"


@dataclass(frozen=True)
class DetailField:
    """Catalog entry for one descriptive vendor field."""

    name: str
    kind: FieldKind = FieldKind.TEXT
    options: tuple[str, ...] = ()
    read_only: bool = False


YES_NO = ("Yes", "No")
RISK_LEVELS = ("High Risk", "Medium Risk", "Low Risk", "No Risk")

DETAIL_FIELDS: dict[str, DetailField] = {
    f.name: f
    for f in (
        DetailField("productServiceQuotedCost", FieldKind.NUMBER),
        DetailField("vendorName"),
        DetailField("vendorWebsite"),
        DetailField("properQuotationGiven", FieldKind.CHOICE, YES_NO),
        DetailField("properQuotationGivenNew", FieldKind.CHOICE, YES_NO),
        DetailField("riskAssessment", FieldKind.CHOICE, RISK_LEVELS),
        DetailField("vendorAddress"),
        DetailField("compliance"),
        DetailField("ccAccepted", FieldKind.CHOICE, YES_NO),
        DetailField("netTermsAvailable"),
        DetailField("ccCharges", FieldKind.NUMBER),
        DetailField("specsSheetTaken", FieldKind.CHOICE, YES_NO),
        DetailField("leadTimeOffered"),
        DetailField("stockAvailable"),
        DetailField("quoteReceivingDate", FieldKind.DATE),
        DetailField("quoteValidTill", FieldKind.DATE),
        DetailField("remainingDays", FieldKind.NUMBER, read_only=True),
        DetailField("itemSameAlternative", FieldKind.CHOICE, ("Same", "Alternative")),
        DetailField("warrantyPeriod"),
        DetailField("afterSalesSupport"),
        DetailField("supportPeriod"),
        DetailField("warrantySupportTerms"),
        DetailField("estimatedShippingCost", FieldKind.NUMBER),
        DetailField("applicableTaxes"),
        DetailField("restockingFees", FieldKind.CHOICE, YES_NO),
        DetailField("restockingFeesPercentage", FieldKind.NUMBER),
        DetailField("remarks"),
    )
}

ADDITIVE_FIELDS: tuple[str, ...] = (
    "cc_charges_amount",
    "tax_amount",
    "freight_logistics",
    "extended_warranty",
    "installation",
    "restocking_fees_amount",
    "other1",
    "other2",
)
DISCOUNT_FIELDS: tuple[str, ...] = ("discount1", "discount2")
ADJUSTMENT_FIELDS: tuple[str, ...] = ADDITIVE_FIELDS + DISCOUNT_FIELDS
DERIVED_PRICING_FIELDS: tuple[str, ...] = ("subtotal", "gross_total", "net_total")

ZERO = Decimal("0")
NUMERIC_AMOUNTS = "numeric_amounts"


def empty_details() -> dict[str, RawValue]:
    """Return a blank descriptive field mapping."""
    return {name: "" for name in DETAIL_FIELDS}


def _dump_amount(value: Decimal, info: FieldSerializationInfo) -> str | int | float:
    # workflow mirror documents carry derived amounts as numbers
    if info.context and info.context.get(NUMERIC_AMOUNTS):
        return int(value) if value == value.to_integral_value() else float(value)
    return str(value)


def _keyed_by_id(value: Any, model: type[BaseModel]) -> Any:
    if isinstance(value, (list, tuple)):
        items = [model.model_validate(item) if isinstance(item, dict) else item for item in value]
        return {item.id: item for item in items}
    if isinstance(value, dict):
        items = [model.model_validate(item) if isinstance(item, dict) else item for item in value.values()]
        return {item.id: item for item in items}
    return value


class QuoteModel(BaseModel):
    """Base model; attributes listed in ``derived_fields`` reject assignment.

    Derived values are replaced through ``model_copy(update=...)`` by the
    aggregate engine only.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    derived_fields: ClassVar[frozenset[str]] = frozenset()

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.derived_fields:
            raise DerivedFieldError(name)
        super().__setattr__(name, value)


class LineItem(QuoteModel):
    """One priced row of a pricing block. ``cost`` is quantity x unit price."""

    derived_fields: ClassVar[frozenset[str]] = frozenset({"cost"})

    id: int
    description: str = ""
    quantity: RawValue = Field(default="", alias="qty")
    unit_price: RawValue = ""
    cost: Decimal = ZERO

    @field_serializer("cost", when_used="json")
    def serialize_cost(self, value: Decimal, info: FieldSerializationInfo) -> str | int | float:
        return _dump_amount(value, info)


class PricingBlock(QuoteModel):
    """Line items, adjustment fields and the derived totals."""

    derived_fields: ClassVar[frozenset[str]] = frozenset(DERIVED_PRICING_FIELDS)

    line_items: dict[int, LineItem] = Field(default_factory=lambda: {1: LineItem(id=1)})

    cc_charges_amount: RawValue = 0
    tax_amount: RawValue = 0
    freight_logistics: RawValue = 0
    extended_warranty: RawValue = 0
    installation: RawValue = 0
    restocking_fees_amount: RawValue = 0
    other1: RawValue = 0
    other2: RawValue = 0
    discount1: RawValue = 0
    discount2: RawValue = 0

    subtotal: Decimal = ZERO
    gross_total: Decimal = Field(default=ZERO, alias="grandTotal")
    net_total: Decimal = Field(default=ZERO, alias="finalGrandTotal")

    @field_validator("line_items", mode="before")
    @classmethod
    def _index_line_items(cls, value: Any) -> Any:
        return _keyed_by_id(value, LineItem)

    @field_validator("line_items")
    @classmethod
    def _require_line_item(cls, value: dict[int, LineItem]) -> dict[int, LineItem]:
        if not value:
            raise ValueError("a pricing block needs at least one line item")
        return value

    @field_serializer("line_items")
    def serialize_line_items(self, value: dict[int, LineItem]) -> list[LineItem]:
        return list(value.values())

    @field_serializer("subtotal", "gross_total", "net_total", when_used="json")
    def serialize_total(self, value: Decimal, info: FieldSerializationInfo) -> str | int | float:
        return _dump_amount(value, info)


class VendorQuote(QuoteModel):
    """One vendor's commercial and pricing submission."""

    id: int
    vendor_name: str = ""
    is_primary: bool = False
    details: dict[str, RawValue] = Field(default_factory=empty_details, alias="sourcingInfo")
    attachments: list[str] = Field(default_factory=list)
    pricing: PricingBlock = Field(default_factory=PricingBlock)

    @model_validator(mode="before")
    @classmethod
    def _lift_attachments(cls, data: Any) -> Any:
        # workflow documents keep attachment ids inside sourcingInfo
        if isinstance(data, dict) and "attachments" not in data:
            info = data.get("sourcingInfo", data.get("details"))
            if isinstance(info, dict) and "attachments" in info:
                info = dict(info)
                attachments = info.pop("attachments") or []
                key = "sourcingInfo" if "sourcingInfo" in data else "details"
                data = {**data, key: info, "attachments": attachments}
        return data

    @model_serializer(mode="wrap")
    def _nest_attachments(self, handler: Any, info: SerializationInfo) -> dict[str, Any]:
        data = handler(self)
        if info.by_alias and "sourcingInfo" in data and "attachments" in data:
            data["sourcingInfo"] = {**data["sourcingInfo"], "attachments": data.pop("attachments")}
        return data

    @property
    def line_items(self) -> dict[int, LineItem]:
        return self.pricing.line_items


class SourcingRecord(QuoteModel):
    """All vendor quotes of one work order."""

    vendors: dict[int, VendorQuote]
    active_vendor_id: int | None = None

    @field_validator("vendors", mode="before")
    @classmethod
    def _index_vendors(cls, value: Any) -> Any:
        return _keyed_by_id(value, VendorQuote)

    @field_validator("vendors")
    @classmethod
    def _require_vendor(cls, value: dict[int, VendorQuote]) -> dict[int, VendorQuote]:
        if not value:
            raise ValueError("a sourcing record needs at least one vendor")
        return value

    @model_validator(mode="after")
    def _normalise_flags(self) -> SourcingRecord:
        # exactly one primary; legacy documents may carry none or several
        primaries = [vendor for vendor in self.vendors.values() if vendor.is_primary]
        keep = primaries[0] if primaries else next(iter(self.vendors.values()))
        for vendor in self.vendors.values():
            vendor.is_primary = vendor is keep
        if self.active_vendor_id not in self.vendors:
            self.active_vendor_id = keep.id
        return self

    @field_serializer("vendors")
    def serialize_vendors(self, value: dict[int, VendorQuote]) -> list[VendorQuote]:
        return list(value.values())

    @property
    def primary_vendor(self) -> VendorQuote:
        return next(vendor for vendor in self.vendors.values() if vendor.is_primary)

    @property
    def active_vendor(self) -> VendorQuote:
        return self.vendors[self.active_vendor_id]  # type: ignore[index]

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible document in the workflow's field naming.

        Derived amounts are exact decimal strings.
        """
        return self.model_dump(mode="json", by_alias=True)

    def to_workflow_document(self) -> dict[str, Any]:
        """Document for the workflow mirror; derived amounts are JSON numbers."""
        return self.model_dump(mode="json", by_alias=True, context={NUMERIC_AMOUNTS: True})

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> SourcingRecord:
        return cls.model_validate(document)


class QuoteValidity(str, Enum):
    """Read-only classification of a quote's validity date."""

    VALID = "valid"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


__all__ = [
    "ADDITIVE_FIELDS",
    "ADJUSTMENT_FIELDS",
    "DERIVED_PRICING_FIELDS",
    "DETAIL_FIELDS",
    "DISCOUNT_FIELDS",
    "DetailField",
    "FieldKind",
    "LineItem",
    "PricingBlock",
    "QuoteModel",
    "QuoteValidity",
    "RawValue",
    "SourcingRecord",
    "VendorQuote",
    "empty_details",
]
