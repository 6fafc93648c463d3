from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from orderdesk.models.customer import CustomerSegment, CustomerType


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    customer_code: Optional[str] = Field(None, max_length=50, description="Generated when omitted")
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    tax_number: Optional[str] = Field(None, max_length=50)
    customer_type: CustomerType = CustomerType.INDIVIDUAL
    segment: CustomerSegment = CustomerSegment.STANDARD
    payment_terms: int = Field(30, ge=0)
    credit_limit: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    tax_number: Optional[str] = Field(None, max_length=50)
    customer_type: Optional[CustomerType] = None
    segment: Optional[CustomerSegment] = None
    payment_terms: Optional[int] = Field(None, ge=0)
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_code: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    tax_number: Optional[str] = None
    customer_type: CustomerType
    segment: CustomerSegment
    payment_terms: int
    credit_limit: Decimal
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
