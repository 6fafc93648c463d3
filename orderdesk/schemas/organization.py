from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from orderdesk.constants.roles import DEFAULT_ROLE, MembershipRole


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    industry: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    tax_number: Optional[str] = Field(None, max_length=50)


class OrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    industry: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_active: bool
    created_at: datetime


class MembershipCreate(BaseModel):
    user_id: int
    role: MembershipRole = DEFAULT_ROLE


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    organization_id: int
    role: MembershipRole
    is_active: bool
    assigned_by_id: Optional[int] = None
    created_at: datetime


class MyOrganization(BaseModel):
    organization: OrganizationResponse
    role: MembershipRole
