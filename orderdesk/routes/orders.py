"""
Order Routes

GET    /api/v1/orders                  → list orders (filters + paging)
POST   /api/v1/orders                  → create a draft order
GET    /api/v1/orders/statistics       → sales statistics
GET    /api/v1/orders/top-products     → best selling products
GET    /api/v1/orders/{id}             → order with line items
PATCH  /api/v1/orders/{id}             → edit non-financial details
PATCH  /api/v1/orders/{id}/status      → status transition
PATCH  /api/v1/orders/{id}/payment     → payment status transition
PATCH  /api/v1/orders/{id}/cancel      → cancel (idempotent)
DELETE /api/v1/orders/{id}             → delete a draft order (admin)
GET    /api/v1/customers/{id}/orders   → orders of one customer
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import settings
from orderdesk.constants.roles import MembershipRole
from orderdesk.database import get_db
from orderdesk.dependencies import get_order_service, get_org_context, require_org_role
from orderdesk.models.order import OrderStatus, PaymentStatus
from orderdesk.schemas.analytics import SalesStatistics, TopProduct
from orderdesk.schemas.order import (
    OrderCreate,
    OrderDetailsUpdate,
    OrderFilters,
    OrderResponse,
    OrderStatusUpdate,
    OrderSummary,
    PaymentStatusUpdate,
)
from orderdesk.services.analytics_service import SalesAnalyticsService
from orderdesk.services.order_service import OrderService
from orderdesk.services.org_access_service import OrgContext
from orderdesk.utils.pagination import PageResponse, PaginationParams

router = APIRouter(tags=["Orders"])
logger = logging.getLogger(__name__)


@router.get("/orders", response_model=PageResponse[OrderSummary])
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    customer_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(),
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    filters = OrderFilters(
        status=status_filter,
        payment_status=payment_status,
        customer_id=customer_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    page = await service.list_orders(ctx, filters, pagination.page, pagination.limit)
    return PageResponse.from_page(page, [OrderSummary.model_validate(order) for order in page.items])


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.create_order(ctx, payload)


@router.get("/orders/statistics", response_model=SalesStatistics)
async def sales_statistics(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await SalesAnalyticsService.sales_statistics(ctx, db, start_date, end_date)


@router.get("/orders/top-products", response_model=list[TopProduct])
async def top_products(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(settings.top_products_default_limit, ge=1, le=100),
    ctx: OrgContext = Depends(get_org_context),
    db: AsyncSession = Depends(get_db),
):
    return await SalesAnalyticsService.top_products(ctx, db, start_date, end_date, limit)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.get_order(ctx, order_id)


@router.patch("/orders/{order_id}", response_model=OrderResponse)
async def update_order_details(
    order_id: int,
    payload: OrderDetailsUpdate,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_order_details(ctx, order_id, payload)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_status(ctx, order_id, payload.status)


@router.patch("/orders/{order_id}/payment", response_model=OrderResponse)
async def update_payment_status(
    order_id: int,
    payload: PaymentStatusUpdate,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.update_payment_status(
        ctx, order_id, payload.payment_status, payload.paid_amount, payload.payment_method
    )


@router.patch("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: int,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.cancel_order(ctx, order_id)


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: int,
    ctx: OrgContext = Depends(require_org_role(MembershipRole.ADMIN)),
    service: OrderService = Depends(get_order_service),
):
    await service.delete_order(ctx, order_id)


@router.get("/customers/{customer_id}/orders", response_model=list[OrderSummary])
async def list_customer_orders(
    customer_id: int,
    ctx: OrgContext = Depends(get_org_context),
    service: OrderService = Depends(get_order_service),
):
    return await service.list_customer_orders(ctx, customer_id)
