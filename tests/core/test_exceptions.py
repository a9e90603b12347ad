from __future__ import annotations

import pytest

from quotedesk.core.exceptions import (
    ConfigurationError,
    DerivedFieldError,
    ErrorCode,
    ErrorMessageTemplate,
    InvariantError,
    MinimumCardinalityError,
    NotFoundError,
    QuoteDeskError,
    SaveInProgressError,
    StorageWriteError,
    TransformError,
    UnknownFieldError,
    ValidationError,
    error_response_from,
    format_error_response,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ConfigurationError("bad"), ErrorCode.CONFIGURATION_ERROR),
        (ValidationError("bad type", reason="type"), ErrorCode.INVALID_MEDIA_TYPE),
        (ValidationError("too big", reason="size"), ErrorCode.ATTACHMENT_TOO_LARGE),
        (ValidationError("bad choice", reason="choice"), ErrorCode.VALIDATION_ERROR),
        (TransformError("broken"), ErrorCode.TRANSFORM_ERROR),
        (MinimumCardinalityError("last one", collection="vendors"), ErrorCode.MINIMUM_CARDINALITY),
        (DerivedFieldError("subtotal"), ErrorCode.DERIVED_FIELD_READ_ONLY),
        (UnknownFieldError("pricing", "shipping"), ErrorCode.UNKNOWN_FIELD),
        (NotFoundError("missing", kind="vendor", identifier=3), ErrorCode.NOT_FOUND),
        (StorageWriteError("offline", tier="mirror"), ErrorCode.STORAGE_WRITE_ERROR),
        (SaveInProgressError(), ErrorCode.SAVE_IN_PROGRESS),
    ],
)
def test_error_codes(error: QuoteDeskError, code: ErrorCode) -> None:
    assert error.code is code
    assert error.error_code == code.value
    assert isinstance(error, QuoteDeskError)


def test_invariant_errors_share_a_base() -> None:
    for error in (
        MinimumCardinalityError("x", collection="lineItems"),
        DerivedFieldError("cost"),
        UnknownFieldError("sourcingInfo", "colour"),
    ):
        assert isinstance(error, InvariantError)


def test_validation_error_carries_file_context() -> None:
    error = ValidationError("too big", reason="size", filename="plan.pdf", details={"size": 20})

    assert error.to_payload() == {
        "code": "ATTACHMENT_TOO_LARGE",
        "message": "too big",
        "details": {"size": 20, "reason": "size", "filename": "plan.pdf"},
    }


def test_storage_error_details() -> None:
    error = StorageWriteError("offline", tier="structured", retryable=False)

    assert error.details == {"tier": "structured", "retryable": False}
    assert error.retryable is False


class TestErrorResponses:
    def test_template_message(self) -> None:
        message = ErrorMessageTemplate.get_message(ErrorCode.MINIMUM_CARDINALITY, collection="vendor")

        assert message == "Cannot remove the last vendor"

    def test_template_with_missing_variable_falls_back(self) -> None:
        message = ErrorMessageTemplate.get_message(ErrorCode.NOT_FOUND)

        assert message == "An unknown error occurred (code: NOT_FOUND)"

    def test_format_error_response(self) -> None:
        response = format_error_response(ErrorCode.STORAGE_WRITE_ERROR, tier="mirror")

        assert response["error"]["code"] == "STORAGE_WRITE_ERROR"
        assert response["error"]["message"] == "Error saving data to mirror storage. Please try again."
        assert response["error"]["details"] == {"tier": "mirror"}
        assert "timestamp" in response["error"]

    def test_response_from_error(self) -> None:
        response = error_response_from(NotFoundError("Vendor 3 not found", kind="vendor", identifier=3))

        assert response["error"]["message"] == "Vendor 3 not found"
        assert response["error"]["details"] == {"kind": "vendor", "identifier": 3}
