from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from orderdesk.models.order import OrderStatus, PaymentStatus


class OrderItemCreate(BaseModel):
    product_id: int = Field(..., title="Product ID")
    # Positivity is checked by the pricing engine so callers get INVALID_QUANTITY.
    quantity: int = Field(..., title="Quantity")
    unit_price: Optional[Decimal] = Field(
        None,
        decimal_places=2,
        title="Unit Price Override",
        description="Explicit unit price; omit to use the catalog price.",
    )


class OrderCreate(BaseModel):
    customer_id: int = Field(..., title="Customer ID")
    items: List[OrderItemCreate] = Field(..., title="Line Items")
    expected_delivery_date: Optional[datetime] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = Field(None, max_length=100)
    billing_address: Optional[str] = None
    billing_city: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customer_id": 12,
                "items": [{"product_id": 3, "quantity": 2}, {"product_id": 7, "quantity": 1, "unit_price": "99.90"}],
                "shipping_city": "Izmir",
                "notes": "Deliver before noon",
            }
        }
    )


class OrderDetailsUpdate(BaseModel):
    """Non-financial fields; line items and totals are fixed once created."""

    expected_delivery_date: Optional[datetime] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = Field(None, max_length=100)
    billing_address: Optional[str] = None
    billing_city: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus = Field(..., title="Target Status")


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus = Field(..., title="Target Payment Status")
    paid_amount: Optional[Decimal] = Field(None, title="Paid Amount")
    payment_method: Optional[str] = Field(None, max_length=50)


class OrderFilters(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    customer_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    pricing_mode: str
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


class OrderSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_id: int
    customer_name: Optional[str] = None
    order_date: datetime
    status: OrderStatus
    payment_status: PaymentStatus
    subtotal: Decimal
    tax_total: Decimal
    grand_total: Decimal
    paid_amount: Decimal


class OrderResponse(OrderSummary):
    organization_id: int
    expected_delivery_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    billing_address: Optional[str] = None
    billing_city: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []
