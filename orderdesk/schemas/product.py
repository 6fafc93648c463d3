from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=100, title="SKU")
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    barcode: Optional[str] = Field(None, max_length=100)
    unit: str = Field("pcs", max_length=50)
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100, description="Tax rate in percent, e.g. 18.00")
    stock_quantity: int = Field(0, ge=0)
    reorder_threshold: int = Field(10, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    barcode: Optional[str] = Field(None, max_length=100)
    unit: Optional[str] = Field(None, max_length=50)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    reorder_threshold: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class StockAdjustment(BaseModel):
    """Signed correction: positive restocks, negative writes off."""

    quantity: int = Field(..., title="Stock Delta")
    reason: Optional[str] = Field(None, max_length=255)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    name: str
    category: str
    description: Optional[str] = None
    barcode: Optional[str] = None
    unit: str
    unit_price: Decimal
    unit_cost: Optional[Decimal] = None
    tax_rate: Decimal
    stock_quantity: int
    reorder_threshold: int
    is_low_stock: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
