"""Data models."""

from quotedesk.core.models.attachment import Attachment, AttachmentUpload, UploadOutcome
from quotedesk.core.models.sourcing import (
    ADDITIVE_FIELDS,
    ADJUSTMENT_FIELDS,
    DERIVED_PRICING_FIELDS,
    DETAIL_FIELDS,
    DISCOUNT_FIELDS,
    DetailField,
    FieldKind,
    LineItem,
    PricingBlock,
    QuoteValidity,
    RawValue,
    SourcingRecord,
    VendorQuote,
    empty_details,
)

__all__ = [
    "ADDITIVE_FIELDS",
    "ADJUSTMENT_FIELDS",
    "DERIVED_PRICING_FIELDS",
    "DETAIL_FIELDS",
    "DISCOUNT_FIELDS",
    "Attachment",
    "AttachmentUpload",
    "DetailField",
    "FieldKind",
    "LineItem",
    "PricingBlock",
    "QuoteValidity",
    "RawValue",
    "SourcingRecord",
    "UploadOutcome",
    "VendorQuote",
    "empty_details",
]
