"""
Sales Analytics Service

Read-only projections over orders and order items for one organization.
Cancelled orders never count towards revenue or product rankings. Paid
revenue is money held on `partial` and `paid` orders; money returned on
`refunded` orders is reported separately.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import case, distinct, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderdesk.config import settings
from orderdesk.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from orderdesk.models.product import Product
from orderdesk.services.org_access_service import OrgContext
from orderdesk.services.pricing_service import ZERO, to_money

logger = logging.getLogger(__name__)


def _date_conditions(start_date: date | None, end_date: date | None) -> list:
    conditions = []
    if start_date is not None:
        conditions.append(Order.order_date >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
    if end_date is not None:
        end = datetime.combine(end_date, time.min, tzinfo=timezone.utc) + timedelta(days=1)
        conditions.append(Order.order_date < end)
    return conditions


class SalesAnalyticsService:
    """Service for sales reporting"""

    @staticmethod
    async def sales_statistics(
        ctx: OrgContext,
        db: AsyncSession,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict[str, Any]:
        """
        Aggregate order counts and revenue in an inclusive date range.

        Args:
            ctx: Organization context
            db: Database session
            start_date: First day to include (optional)
            end_date: Last day to include (optional)

        Returns:
            Dict with counts and revenue figures
        """
        not_cancelled = Order.status != OrderStatus.CANCELLED.value
        collected = Order.payment_status.in_([PaymentStatus.PARTIAL.value, PaymentStatus.PAID.value])
        outstanding = Order.payment_status.in_([PaymentStatus.PENDING.value, PaymentStatus.PARTIAL.value])
        refunded = Order.payment_status == PaymentStatus.REFUNDED.value

        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        def sum_where(condition, column):
            return func.coalesce(func.sum(case((condition, column), else_=0)), 0)

        result = await db.execute(
            select(
                func.count(Order.id).label("total_orders"),
                count_where(Order.status == OrderStatus.DELIVERED.value).label("delivered_orders"),
                count_where(Order.status == OrderStatus.CANCELLED.value).label("cancelled_orders"),
                count_where(not_cancelled & (Order.payment_status == PaymentStatus.PAID.value)).label("paid_orders"),
                count_where(not_cancelled).label("billable_orders"),
                sum_where(not_cancelled, Order.grand_total).label("total_revenue"),
                sum_where(not_cancelled & collected, Order.paid_amount).label("paid_revenue"),
                sum_where(not_cancelled & outstanding, Order.grand_total - Order.paid_amount).label("pending_revenue"),
                sum_where(not_cancelled & refunded, Order.paid_amount).label("refunded_revenue"),
            ).where(Order.organization_id == ctx.organization_id, *_date_conditions(start_date, end_date))
        )
        row = result.one()

        total_revenue = to_money(row.total_revenue)
        paid_revenue = to_money(row.paid_revenue)
        billable = int(row.billable_orders or 0)
        average = to_money(total_revenue / billable) if billable else ZERO

        return {
            "start_date": start_date,
            "end_date": end_date,
            "total_orders": int(row.total_orders or 0),
            "delivered_orders": int(row.delivered_orders or 0),
            "cancelled_orders": int(row.cancelled_orders or 0),
            "paid_orders": int(row.paid_orders or 0),
            "total_revenue": total_revenue,
            "paid_revenue": paid_revenue,
            "pending_revenue": to_money(row.pending_revenue),
            "refunded_revenue": to_money(row.refunded_revenue),
            "average_order_value": average,
        }

    @staticmethod
    async def top_products(
        ctx: OrgContext,
        db: AsyncSession,
        start_date: date | None = None,
        end_date: date | None = None,
        limit: int = settings.top_products_default_limit,
    ) -> list[dict[str, Any]]:
        """Products ranked by quantity sold, then by revenue."""
        total_quantity = func.sum(OrderItem.quantity)
        total_revenue = func.sum(OrderItem.total)

        result = await db.execute(
            select(
                Product.id,
                Product.name,
                Product.sku,
                Product.category,
                total_quantity.label("total_quantity"),
                total_revenue.label("total_revenue"),
                func.count(distinct(Order.id)).label("order_count"),
            )
            .select_from(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .join(Product, Product.id == OrderItem.product_id)
            .where(
                Order.organization_id == ctx.organization_id,
                Product.organization_id == ctx.organization_id,
                Order.status != OrderStatus.CANCELLED.value,
                *_date_conditions(start_date, end_date),
            )
            .group_by(Product.id, Product.name, Product.sku, Product.category)
            .order_by(total_quantity.desc(), total_revenue.desc(), Product.id.asc())
            .limit(limit)
        )

        return [
            {
                "product_id": product_id,
                "name": name,
                "sku": sku,
                "category": category,
                "total_quantity": int(quantity or 0),
                "total_revenue": to_money(revenue),
                "order_count": int(order_count or 0),
            }
            for product_id, name, sku, category, quantity, revenue, order_count in result.all()
        ]
