from .analytics import SalesStatistics, TopProduct
from .customer import CustomerCreate, CustomerResponse, CustomerUpdate
from .order import (
    OrderCreate,
    OrderDetailsUpdate,
    OrderFilters,
    OrderItemCreate,
    OrderItemResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummary,
    PaymentStatusUpdate,
)
from .organization import MembershipCreate, MembershipResponse, MyOrganization, OrganizationCreate, OrganizationResponse
from .product import ProductCreate, ProductResponse, ProductUpdate, StockAdjustment

# Define the public API of this module
__all__ = [
    "CustomerCreate",
    "CustomerResponse",
    "CustomerUpdate",
    "MembershipCreate",
    "MembershipResponse",
    "MyOrganization",
    "OrderCreate",
    "OrderDetailsUpdate",
    "OrderFilters",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "OrderSummary",
    "OrganizationCreate",
    "OrganizationResponse",
    "PaymentStatusUpdate",
    "ProductCreate",
    "ProductResponse",
    "ProductUpdate",
    "SalesStatistics",
    "StockAdjustment",
    "TopProduct",
]
