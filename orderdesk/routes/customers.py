"""
Customer Routes

GET    /api/v1/customers        → list customers
POST   /api/v1/customers        → create customer
GET    /api/v1/customers/{id}   → get customer
PUT    /api/v1/customers/{id}   → update customer
DELETE /api/v1/customers/{id}   → deactivate customer
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.database import get_db
from orderdesk.dependencies import get_org_context
from orderdesk.models.customer import CustomerSegment, CustomerType
from orderdesk.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from orderdesk.services import customer_service
from orderdesk.services.org_access_service import OrgContext
from orderdesk.utils.pagination import PageResponse, PaginationParams

router = APIRouter(tags=["Customers"])


@router.get("/customers", response_model=PageResponse[CustomerResponse])
async def list_customers(
    search: Optional[str] = Query(None, max_length=100),
    segment: Optional[CustomerSegment] = Query(None),
    customer_type: Optional[CustomerType] = Query(None),
    is_active: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    page = await customer_service.list_customers(
        ctx,
        db,
        search=search,
        segment=segment.value if segment else None,
        customer_type=customer_type.value if customer_type else None,
        is_active=is_active,
        page=pagination.page,
        limit=pagination.limit,
    )
    return PageResponse.from_page(page, [CustomerResponse.model_validate(customer) for customer in page.items])


@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await customer_service.create_customer(ctx, payload, db)


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: int, ctx: OrgContext = Depends(get_org_context), db: AsyncSession = Depends(get_db)):
    return await customer_service.get_customer(ctx, customer_id, db)


@router.put("/customers/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: int,
    payload: CustomerUpdate,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await customer_service.update_customer(ctx, customer_id, payload, db)


@router.delete("/customers/{customer_id}", response_model=CustomerResponse)
async def deactivate_customer(
    customer_id: int,
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await customer_service.deactivate_customer(ctx, customer_id, db)
