"""Standard error message templates."""

from datetime import UTC, datetime
from typing import Any

from quotedesk.core.exceptions.base import QuoteDeskError
from quotedesk.core.exceptions.codes import ErrorCode


class ErrorMessageTemplate:
    """Error message template registry."""

    _templates: dict[ErrorCode, str] = {
        ErrorCode.GENERAL_ERROR: "An unknown error occurred",
        ErrorCode.CONFIGURATION_ERROR: "Configuration error: {details}",
        ErrorCode.VALIDATION_ERROR: "Validation failed: {details}",
        ErrorCode.INVALID_MEDIA_TYPE: "Invalid file type: {media_type}",
        ErrorCode.ATTACHMENT_TOO_LARGE: "File too large: {size} (max {limit})",
        ErrorCode.TRANSFORM_ERROR: "Could not process file {filename}",
        ErrorCode.INVARIANT_VIOLATION: "Invalid record: {message}",
        ErrorCode.MINIMUM_CARDINALITY: "Cannot remove the last {collection}",
        ErrorCode.DERIVED_FIELD_READ_ONLY: "Field {field} is calculated automatically",
        ErrorCode.UNKNOWN_FIELD: "Unknown field {field}",
        ErrorCode.NOT_FOUND: "{kind} not found: {identifier}",
        ErrorCode.STORAGE_WRITE_ERROR: "Error saving data to {tier} storage. Please try again.",
        ErrorCode.SAVE_IN_PROGRESS: "A save is already in progress",
    }

    @classmethod
    def get_message(cls, error_code: ErrorCode, **kwargs: Any) -> str:
        """Return the formatted message for ``error_code``.

        Falls back to the generic message when a template variable is missing.
        """
        template = cls._templates.get(error_code, cls._templates[ErrorCode.GENERAL_ERROR])
        try:
            return template.format(**kwargs)
        except KeyError:
            return f"{cls._templates[ErrorCode.GENERAL_ERROR]} (code: {error_code.value})"


def format_error_response(error_code: ErrorCode, message: str | None = None, **kwargs: Any) -> dict[str, Any]:
    """Build a standard error response.

    Args:
        error_code: the error code
        message: explicit message; the template message is used when omitted
        **kwargs: error details

    Returns:
        The response dictionary
    """
    if message is None:
        message = ErrorMessageTemplate.get_message(error_code, **kwargs)

    return {
        "error": {
            "code": error_code.value,
            "message": message,
            "details": kwargs,
            "timestamp": datetime.now(UTC).isoformat(),
        }
    }


def error_response_from(error: QuoteDeskError) -> dict[str, Any]:
    """Build a standard error response from a raised :class:`QuoteDeskError`."""

    return format_error_response(error.code, error.message, **error.details)
