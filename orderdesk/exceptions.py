"""
Custom Exception Classes for OrderDesk

Every failure the order engine can surface has a stable, machine-readable
`error_code` and an HTTP status. Handlers in `orderdesk.exception_handlers`
turn these into the standard error envelope.
"""

from enum import Enum
from typing import Any

from fastapi import status


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the `error_code` field."""

    # Tenant boundary
    ORG_CONTEXT_REQUIRED = "ORG_CONTEXT_REQUIRED"
    INVALID_ORG_ID = "INVALID_ORG_ID"
    ORG_ACCESS_DENIED = "ORG_ACCESS_DENIED"
    ORG_ROLE_INSUFFICIENT = "ORG_ROLE_INSUFFICIENT"

    # Authentication
    AUTH_FAILED = "AUTH_FAILED"

    # Domain validation
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"

    # State machine
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_PAYMENT_TRANSITION = "INVALID_PAYMENT_TRANSITION"
    ORDER_NOT_DELETABLE = "ORDER_NOT_DELETABLE"

    # Storage
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"

    # Generic
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class OrderDeskError(Exception):
    """Base exception class for all OrderDesk errors"""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
        error_code: ErrorCode | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


# ============================================================================
# Tenant Boundary Exceptions
# ============================================================================


class OrgContextMissing(OrderDeskError):
    """Raised when a tenant-scoped operation has no organization id"""

    error_code = ErrorCode.ORG_CONTEXT_REQUIRED

    def __init__(self, message: str = "Organization context is required. Please select an organization."):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST)


class InvalidOrgId(OrderDeskError):
    """Raised when the supplied organization id is not a positive integer"""

    error_code = ErrorCode.INVALID_ORG_ID

    def __init__(self, raw_value: Any = None):
        super().__init__(
            message="Invalid organization ID format",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"value": str(raw_value)} if raw_value is not None else {},
        )


class OrgAccessDenied(OrderDeskError):
    """Raised when the principal has no usable membership in the organization"""

    error_code = ErrorCode.ORG_ACCESS_DENIED

    def __init__(
        self,
        message: str = "Access denied. You do not have access to this organization.",
        reason: str | None = None,
    ):
        details = {"reason": reason} if reason else {}
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class InsufficientRole(OrderDeskError):
    """Raised when the membership role ranks below what an operation needs"""

    error_code = ErrorCode.ORG_ROLE_INSUFFICIENT

    def __init__(self, required_role: str, actual_role: str):
        super().__init__(
            message=f"This action requires the '{required_role}' role or higher",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"required_role": required_role, "role": actual_role},
        )


class AuthenticationError(OrderDeskError):
    """Raised when the bearer principal cannot be established"""

    error_code = ErrorCode.AUTH_FAILED

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


# ============================================================================
# Resource Not Found Exceptions
# ============================================================================


class ResourceNotFoundError(OrderDeskError):
    """Base class for resource not found errors"""

    error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any | None = None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message = f"{resource_type} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ProductNotFound(ResourceNotFoundError):
    """Raised when a product does not resolve inside the organization or is inactive"""

    error_code = ErrorCode.PRODUCT_NOT_FOUND

    def __init__(self, product_id: Any | None = None):
        super().__init__(resource_type="Product", resource_id=product_id)


class CustomerNotFound(ResourceNotFoundError):
    error_code = ErrorCode.CUSTOMER_NOT_FOUND

    def __init__(self, customer_id: Any | None = None):
        super().__init__(resource_type="Customer", resource_id=customer_id)


class OrderNotFound(ResourceNotFoundError):
    error_code = ErrorCode.ORDER_NOT_FOUND

    def __init__(self, order_id: Any | None = None):
        super().__init__(resource_type="Order", resource_id=order_id)


# ============================================================================
# Validation & Business Logic Exceptions
# ============================================================================


class ValidationError(OrderDeskError):
    """Raised when input validation fails"""

    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=error_details)


class InvalidQuantity(OrderDeskError):
    """Raised when a line quantity is zero or negative"""

    error_code = ErrorCode.INVALID_QUANTITY

    def __init__(self, quantity: Any, product_id: Any | None = None):
        super().__init__(
            message=f"Quantity must be a positive integer, got {quantity}",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"product_id": product_id, "quantity": quantity},
        )


class InsufficientStock(OrderDeskError):
    """Raised when a reservation would drive stock below zero"""

    error_code = ErrorCode.INSUFFICIENT_STOCK

    def __init__(self, product_id: int, requested: int, available: int | None = None, product_name: str | None = None):
        label = product_name or f"#{product_id}"
        message = f"Insufficient stock for product {label}. Requested: {requested}"
        if available is not None:
            message = f"Insufficient stock for product {label}. Available: {available}, Requested: {requested}"
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details={"product_id": product_id, "requested": requested, "available": available},
        )


class DuplicateResource(OrderDeskError):
    """Raised when attempting to create a duplicate resource"""

    error_code = ErrorCode.DUPLICATE_RESOURCE

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource_type": resource_type, "field": field, "value": value},
        )


# ============================================================================
# State Machine Exceptions
# ============================================================================


class InvalidStatusTransition(OrderDeskError):
    """Raised when an order status edge is not in the status graph"""

    error_code = ErrorCode.INVALID_STATUS_TRANSITION

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot transition order from '{current_status}' to '{target_status}'",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_status": current_status, "target_status": target_status},
        )


class InvalidPaymentTransition(OrderDeskError):
    """Raised when a payment status edge is not in the payment graph"""

    error_code = ErrorCode.INVALID_PAYMENT_TRANSITION

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            message=f"Cannot transition payment from '{current_status}' to '{target_status}'",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_status": current_status, "target_status": target_status},
        )


class OrderNotDeletable(OrderDeskError):
    error_code = ErrorCode.ORDER_NOT_DELETABLE

    def __init__(self, order_id: int, current_status: str):
        super().__init__(
            message=f"Only draft orders can be deleted (order is '{current_status}'). Cancel the order instead.",
            status_code=status.HTTP_409_CONFLICT,
            details={"order_id": order_id, "current_status": current_status},
        )


# ============================================================================
# Storage Exceptions
# ============================================================================


class ConcurrencyConflict(OrderDeskError):
    """Raised when an atomic stock or counter update lost a race and did not apply"""

    error_code = ErrorCode.CONCURRENCY_CONFLICT

    def __init__(self, message: str = "The resource was modified concurrently. Please retry.", resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, details=details)


class PersistenceError(OrderDeskError):
    """Raised when the underlying storage fails; never carries internal detail"""

    error_code = ErrorCode.PERSISTENCE_ERROR

    def __init__(self, message: str = "A database error occurred", operation: str | None = None):
        details = {"operation": operation} if operation else {}
        super().__init__(message=message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)
