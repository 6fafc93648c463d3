"""
Product Routes

GET    /api/v1/products             → list products
POST   /api/v1/products             → create product (manager+)
GET    /api/v1/products/low-stock   → products at or below reorder threshold
GET    /api/v1/products/{id}        → get product
PUT    /api/v1/products/{id}        → update product (manager+)
DELETE /api/v1/products/{id}        → deactivate product (manager+)
PATCH  /api/v1/products/{id}/stock  → signed stock adjustment (manager+)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.constants.roles import MembershipRole
from orderdesk.database import get_db
from orderdesk.dependencies import get_org_context, require_org_role
from orderdesk.schemas.product import ProductCreate, ProductResponse, ProductUpdate, StockAdjustment
from orderdesk.services import product_service
from orderdesk.services.inventory_service import list_low_stock
from orderdesk.services.org_access_service import OrgContext
from orderdesk.utils.pagination import PageResponse, PaginationParams

router = APIRouter(tags=["Products"])
logger = logging.getLogger(__name__)

manager_context = require_org_role(MembershipRole.MANAGER)


@router.get("/products", response_model=PageResponse[ProductResponse])
async def list_products(
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    low_stock: bool = Query(False),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    page = await product_service.list_products(
        ctx, db, category, is_active, low_stock, search, pagination.page, pagination.limit
    )
    return PageResponse.from_page(page, [ProductResponse.model_validate(product) for product in page.items])


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    ctx: OrgContext = Depends(manager_context),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.create_product(ctx, payload, db)


@router.get("/products/low-stock", response_model=list[ProductResponse])
async def low_stock_products(ctx: OrgContext = Depends(get_org_context), db: AsyncSession = Depends(get_db)):
    return await list_low_stock(ctx, db)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, ctx: OrgContext = Depends(get_org_context), db: AsyncSession = Depends(get_db)):
    return await product_service.get_product(ctx, product_id, db)


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    ctx: OrgContext = Depends(manager_context),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.update_product(ctx, product_id, payload, db)


@router.delete("/products/{product_id}", response_model=ProductResponse)
async def deactivate_product(
    product_id: int,
    ctx: OrgContext = Depends(manager_context),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.deactivate_product(ctx, product_id, db)


@router.patch("/products/{product_id}/stock", response_model=ProductResponse)
async def adjust_stock(
    product_id: int,
    payload: StockAdjustment,
    ctx: OrgContext = Depends(manager_context),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.adjust_stock(ctx, product_id, payload.quantity, db, reason=payload.reason)
