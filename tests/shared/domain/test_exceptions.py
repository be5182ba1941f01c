"""Tests for the shared error taxonomy."""

from shared.exceptions import (
    DataStoreError,
    InvalidAmount,
    MarketplaceError,
    MissingPrecondition,
    NotAuthenticated,
    ObjectNotFoundError,
    OrderCreateFailed,
    OrderDetailFailed,
    PaymentGatewayError,
    UpstreamError,
    ValidationError,
)
from shared.result import OperationResult


class TestErrorMessages:
    def test_default_message_comes_from_docstring(self):
        assert NotAuthenticated().message == "You must sign in to continue."

    def test_explicit_message_wins(self):
        assert ObjectNotFoundError("Address not found").message == "Address not found"
        assert str(ObjectNotFoundError("Address not found")) == "Address not found"

    def test_validation_error_summarises_fields(self):
        exc = ValidationError({"postal_code": ["must be 5 digits"], "phone": ["too short", "digits only"]})
        assert exc.messages["phone"] == ["too short", "digits only"]
        assert "postal_code: must be 5 digits" in exc.message
        assert "phone: too short, digits only" in exc.message


class TestErrorCodes:
    def test_caller_error_codes(self):
        assert NotAuthenticated.code == "not_authenticated"
        assert ObjectNotFoundError.code == "not_found"
        assert ValidationError.code == "validation_error"
        assert InvalidAmount.code == "invalid_amount"
        assert MissingPrecondition.code == "missing_precondition"

    def test_upstream_errors_share_a_code(self):
        assert DataStoreError.code == UpstreamError.code == PaymentGatewayError.code == "upstream_error"

    def test_commit_errors_carry_reference(self):
        exc = OrderDetailFailed("paid but unrecorded", payment_reference_id="pi_abc")
        assert exc.payment_reference_id == "pi_abc"
        assert exc.code == "order_detail_failed"
        assert OrderCreateFailed.code == "order_create_failed"

    def test_hierarchy(self):
        assert issubclass(InvalidAmount, ValidationError)
        assert issubclass(MissingPrecondition, ValidationError)
        assert issubclass(PaymentGatewayError, UpstreamError)
        assert issubclass(OrderCreateFailed, MarketplaceError)


class TestOperationResult:
    def test_ok_envelope(self):
        result = OperationResult.ok("Cart loaded", {"items": []})
        assert result.success is True
        assert result.error is None
        assert result.data == {"items": []}

    def test_fail_envelope(self):
        result = OperationResult.fail("Address not found", "not_found")
        assert result.success is False
        assert result.error == "not_found"
        assert result.data is None
