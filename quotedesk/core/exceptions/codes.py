"""Standardised error codes shared by every quotedesk error."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Machine readable error codes."""

    GENERAL_ERROR = "GENERAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # attachments
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_MEDIA_TYPE = "INVALID_MEDIA_TYPE"
    ATTACHMENT_TOO_LARGE = "ATTACHMENT_TOO_LARGE"
    TRANSFORM_ERROR = "TRANSFORM_ERROR"

    # record structure
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    MINIMUM_CARDINALITY = "MINIMUM_CARDINALITY"
    DERIVED_FIELD_READ_ONLY = "DERIVED_FIELD_READ_ONLY"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"

    # lookup
    NOT_FOUND = "NOT_FOUND"

    # storage
    STORAGE_WRITE_ERROR = "STORAGE_WRITE_ERROR"
    SAVE_IN_PROGRESS = "SAVE_IN_PROGRESS"


__all__ = ["ErrorCode"]
