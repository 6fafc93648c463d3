from .customer import Customer, CustomerSegment, CustomerType
from .order import Order, OrderItem, OrderStatus, PaymentStatus
from .order_counter import OrderNumberCounter
from .organization import Membership, Organization
from .product import Product
from .user import User

__all__ = [
    "Customer",
    "CustomerSegment",
    "CustomerType",
    "Membership",
    "Order",
    "OrderItem",
    "OrderNumberCounter",
    "OrderStatus",
    "Organization",
    "PaymentStatus",
    "Product",
    "User",
]
