"""Exception handling module."""

from quotedesk.core.exceptions.base import (
    ConfigurationError,
    DerivedFieldError,
    InvariantError,
    MinimumCardinalityError,
    NotFoundError,
    QuoteDeskError,
    SaveInProgressError,
    StorageWriteError,
    TransformError,
    UnknownFieldError,
    ValidationError,
)
from quotedesk.core.exceptions.codes import ErrorCode
from quotedesk.core.exceptions.messages import ErrorMessageTemplate, error_response_from, format_error_response

__all__ = [
    "QuoteDeskError",
    "ConfigurationError",
    "ValidationError",
    "TransformError",
    "InvariantError",
    "MinimumCardinalityError",
    "DerivedFieldError",
    "UnknownFieldError",
    "NotFoundError",
    "StorageWriteError",
    "SaveInProgressError",
    "ErrorCode",
    "ErrorMessageTemplate",
    "format_error_response",
    "error_response_from",
]
