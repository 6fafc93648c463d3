"""
Tests for custom exception classes and the error envelope

Tests exception status codes, machine-readable codes, details, and the
JSON shape produced by the exception handlers.
"""

import json

import pytest
from fastapi import status

from orderdesk.exception_handlers import error_envelope, status_label
from orderdesk.exceptions import (
    AuthenticationError,
    ConcurrencyConflict,
    CustomerNotFound,
    DuplicateResource,
    ErrorCode,
    InsufficientRole,
    InsufficientStock,
    InvalidOrgId,
    InvalidQuantity,
    OrderDeskError,
    OrderNotFound,
    OrgAccessDenied,
    OrgContextMissing,
    PersistenceError,
    ProductNotFound,
    ResourceNotFoundError,
    ValidationError,
)


class TestOrderDeskError:
    """Test base OrderDeskError class"""

    def test_defaults(self):
        exc = OrderDeskError("Test error")
        assert str(exc) == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.error_code == ErrorCode.INTERNAL_ERROR
        assert exc.details == {}

    def test_explicit_error_code(self):
        exc = OrderDeskError("x", status_code=400, error_code=ErrorCode.VALIDATION_FAILED)
        assert exc.error_code == ErrorCode.VALIDATION_FAILED
        assert exc.status_code == 400


class TestTenantBoundaryExceptions:
    def test_context_missing(self):
        exc = OrgContextMissing()
        assert (exc.status_code, exc.error_code) == (400, ErrorCode.ORG_CONTEXT_REQUIRED)

    def test_invalid_org_id_keeps_raw_value(self):
        exc = InvalidOrgId("abc")
        assert (exc.status_code, exc.error_code) == (400, ErrorCode.INVALID_ORG_ID)
        assert exc.details == {"value": "abc"}

    def test_access_denied_reason(self):
        exc = OrgAccessDenied(reason="membership_inactive")
        assert (exc.status_code, exc.error_code) == (403, ErrorCode.ORG_ACCESS_DENIED)
        assert exc.details == {"reason": "membership_inactive"}

    def test_insufficient_role(self):
        exc = InsufficientRole(required_role="admin", actual_role="member")
        assert exc.status_code == 403
        assert "'admin'" in exc.message
        assert exc.details == {"required_role": "admin", "role": "member"}

    def test_authentication(self):
        assert AuthenticationError().status_code == 401


class TestDomainExceptions:
    @pytest.mark.parametrize(
        "exc,code",
        [
            (ProductNotFound(3), ErrorCode.PRODUCT_NOT_FOUND),
            (CustomerNotFound(3), ErrorCode.CUSTOMER_NOT_FOUND),
            (OrderNotFound(3), ErrorCode.ORDER_NOT_FOUND),
        ],
    )
    def test_not_found_family(self, exc, code):
        assert isinstance(exc, ResourceNotFoundError)
        assert exc.status_code == 404
        assert exc.error_code == code
        assert exc.details["resource_id"] == 3

    def test_insufficient_stock_message(self):
        exc = InsufficientStock(7, requested=3, available=2, product_name="Widget")
        assert exc.status_code == 409
        assert exc.message == "Insufficient stock for product Widget. Available: 2, Requested: 3"

    def test_insufficient_stock_without_available(self):
        exc = InsufficientStock(7, requested=3)
        assert exc.message == "Insufficient stock for product #7. Requested: 3"

    def test_invalid_quantity(self):
        exc = InvalidQuantity(0, product_id=5)
        assert (exc.status_code, exc.error_code) == (400, ErrorCode.INVALID_QUANTITY)
        assert exc.details == {"product_id": 5, "quantity": 0}

    def test_validation_error_field(self):
        exc = ValidationError("bad", field="paid_amount")
        assert exc.details == {"field": "paid_amount"}

    def test_duplicate(self):
        exc = DuplicateResource("Product", "sku", "SKU-1")
        assert exc.message == "Product with sku 'SKU-1' already exists"


class TestStorageExceptions:
    def test_conflict(self):
        exc = ConcurrencyConflict(resource="product_stock")
        assert (exc.status_code, exc.error_code) == (409, ErrorCode.CONCURRENCY_CONFLICT)

    def test_persistence_error_is_generic(self):
        exc = PersistenceError(operation="create_order")
        assert exc.status_code == 500
        assert exc.message == "A database error occurred"
        assert exc.details == {"operation": "create_order"}


class TestErrorEnvelope:
    """Test the JSON error envelope"""

    def test_full_envelope(self):
        response = error_envelope(
            409, ErrorCode.INSUFFICIENT_STOCK, "Out of stock", {"product_id": 1}, "/api/v1/orders"
        )
        body = json.loads(response.body)

        assert response.status_code == 409
        assert body == {
            "error": {
                "status_code": 409,
                "error_code": "INSUFFICIENT_STOCK",
                "message": "Out of stock",
                "type": "Conflict",
                "details": {"product_id": 1},
                "path": "/api/v1/orders",
            }
        }

    def test_empty_details_and_path_are_omitted(self):
        body = json.loads(error_envelope(500, ErrorCode.INTERNAL_ERROR, "boom", {}).body)
        assert body == {
            "error": {
                "status_code": 500,
                "error_code": "INTERNAL_ERROR",
                "message": "boom",
                "type": "Internal Server Error",
            }
        }

    def test_headers_pass_through(self):
        response = error_envelope(401, ErrorCode.AUTH_FAILED, "no", headers={"WWW-Authenticate": "Bearer"})
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_status_labels(self):
        assert status_label(404) == "Not Found"
        assert status_label(599) == "Error"
