from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class SalesStatistics(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_orders: int
    delivered_orders: int
    cancelled_orders: int
    paid_orders: int
    total_revenue: Decimal
    paid_revenue: Decimal
    pending_revenue: Decimal
    refunded_revenue: Decimal
    average_order_value: Decimal


class TopProduct(BaseModel):
    product_id: int
    name: str
    sku: str
    category: Optional[str] = None
    total_quantity: int
    total_revenue: Decimal
    order_count: int
