"""quotedesk core exception classes."""

from __future__ import annotations

from typing import Any

from quotedesk.core.exceptions.codes import ErrorCode


class QuoteDeskError(Exception):
    """Base class for every error raised by quotedesk."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.GENERAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the error.

        Args:
            message: human readable message
            error_code: machine readable code
            details: extra context, copied
        """
        super().__init__(message)
        self.message = message
        self.code = error_code
        self.error_code = error_code.value
        self.details = dict(details or {})

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {
            "code": self.error_code,
            "message": self.message,
            "details": dict(self.details),
        }


class ConfigurationError(QuoteDeskError):
    """Invalid configuration value."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(QuoteDeskError):
    """Rejected input: attachment type or size, or a value outside a choice list."""

    def __init__(
        self,
        message: str,
        reason: str,
        filename: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        code = {
            "type": ErrorCode.INVALID_MEDIA_TYPE,
            "size": ErrorCode.ATTACHMENT_TOO_LARGE,
        }.get(reason, ErrorCode.VALIDATION_ERROR)
        super_details = details or {}
        super_details["reason"] = reason
        if filename:
            super_details["filename"] = filename
        super().__init__(message, code, super_details)
        self.reason = reason
        self.filename = filename


class TransformError(QuoteDeskError):
    """The binary transform pipeline failed for one file."""

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if filename:
            super_details["filename"] = filename
        super().__init__(message, ErrorCode.TRANSFORM_ERROR, super_details)
        self.filename = filename


class InvariantError(QuoteDeskError):
    """A mutation would break a structural invariant of a sourcing record."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVARIANT_VIOLATION,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, details)


class MinimumCardinalityError(InvariantError):
    """Removing the last vendor or the last line item."""

    def __init__(self, message: str, collection: str, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["collection"] = collection
        super().__init__(message, ErrorCode.MINIMUM_CARDINALITY, super_details)
        self.collection = collection


class DerivedFieldError(InvariantError):
    """Attempt to write a computed field."""

    def __init__(self, field: str, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["field"] = field
        super().__init__(f"Field '{field}' is derived and read-only", ErrorCode.DERIVED_FIELD_READ_ONLY, super_details)
        self.field = field


class UnknownFieldError(InvariantError):
    """Field name not part of the addressed section."""

    def __init__(self, section: str, field: str, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details.update({"section": section, "field": field})
        super().__init__(f"Unknown field '{field}' in section '{section}'", ErrorCode.UNKNOWN_FIELD, super_details)
        self.section = section
        self.field = field


class NotFoundError(QuoteDeskError):
    """Lookup of a missing record, vendor, line item or attachment."""

    def __init__(self, message: str, kind: str, identifier: Any, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details.update({"kind": kind, "identifier": identifier})
        super().__init__(message, ErrorCode.NOT_FOUND, super_details)
        self.kind = kind
        self.identifier = identifier


class StorageWriteError(QuoteDeskError):
    """A storage tier was unavailable or rejected a write."""

    def __init__(
        self,
        message: str,
        tier: str,
        retryable: bool = True,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.update({"tier": tier, "retryable": retryable})
        super().__init__(message, ErrorCode.STORAGE_WRITE_ERROR, super_details)
        self.tier = tier
        self.retryable = retryable


class SaveInProgressError(QuoteDeskError):
    """An interactive action needs the save gate while a save is in flight."""

    def __init__(self, message: str = "A save is already in progress", details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.SAVE_IN_PROGRESS, details)
