"""
Order Service

Orchestrates the guard, pricing engine, inventory ledger, state machine and
order number generator into the order lifecycle operations.

Every mutating operation runs in a single unit of work: stock changes and
order-row changes commit together or not at all. Transient write conflicts
(ConcurrencyConflict) are retried a bounded number of times with backoff
before surfacing to the caller.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, TypeVar

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import settings
from orderdesk.constants.roles import MembershipRole
from orderdesk.database import unit_of_work
from orderdesk.exceptions import ConcurrencyConflict, CustomerNotFound, OrderNotFound, ValidationError
from orderdesk.models.customer import Customer
from orderdesk.models.order import Order, OrderItem, OrderStatus, PaymentStatus
from orderdesk.schemas.order import OrderCreate, OrderDetailsUpdate, OrderFilters
from orderdesk.services.inventory_service import InventoryLedger
from orderdesk.services.order_number_service import allocate_order_number
from orderdesk.services.order_state_machine import (
    ensure_deletable,
    is_terminal,
    validate_payment_transition,
    validate_status_transition,
)
from orderdesk.services.org_access_service import OrgContext, require_role
from orderdesk.services.pricing_service import ZERO, LineRequest, price_order, to_money
from orderdesk.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def stock_lines(items: Iterable[Any]) -> list[tuple[int, int]]:
    """
    Collapse line items into (product_id, quantity) pairs, one per product,
    sorted by product id so concurrent writers touch rows in the same order.
    """
    totals: dict[int, int] = defaultdict(int)
    for item in items:
        totals[item.product_id] += item.quantity
    return sorted(totals.items())


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


class OrderService:
    """Order lifecycle operations bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── retry ────────────────────────────────────────────────────────────────

    async def _with_retry(self, operation: str, attempt: Callable[[], Awaitable[T]]) -> T:
        backoff = settings.conflict_retry_backoff_ms
        retries = 0
        while True:
            try:
                return await attempt()
            except ConcurrencyConflict:
                if retries >= settings.conflict_max_retries:
                    logger.error("%s gave up after %d retries on concurrency conflict", operation, retries)
                    raise
                delay_ms = backoff[min(retries, len(backoff) - 1)] if backoff else 0
                retries += 1
                logger.warning("%s hit a concurrency conflict, retry %d in %dms", operation, retries, delay_ms)
                await asyncio.sleep(delay_ms / 1000)

    # ── reads ────────────────────────────────────────────────────────────────

    async def _load_order(self, ctx: OrgContext, order_id: int) -> Order:
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id, Order.organization_id == ctx.organization_id)
            .execution_options(populate_existing=True)
        )
        order = result.unique().scalars().first()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def get_order(self, ctx: OrgContext, order_id: int) -> Order:
        """Return the order with its line items, or raise OrderNotFound."""
        return await self._load_order(ctx, order_id)

    async def list_orders(
        self,
        ctx: OrgContext,
        filters: OrderFilters | None = None,
        page: int = 1,
        limit: int = settings.default_page_limit,
    ) -> Page[Order]:
        """
        Paged order summaries, newest first.

        Search matches the order number or the customer name, case-insensitive.
        The date range is inclusive on both ends.
        """
        filters = filters or OrderFilters()
        conditions = [Order.organization_id == ctx.organization_id]

        if filters.status is not None:
            conditions.append(Order.status == OrderStatus(filters.status).value)
        if filters.payment_status is not None:
            conditions.append(Order.payment_status == PaymentStatus(filters.payment_status).value)
        if filters.customer_id is not None:
            conditions.append(Order.customer_id == filters.customer_id)
        if filters.start_date is not None:
            conditions.append(Order.order_date >= _day_start(filters.start_date))
        if filters.end_date is not None:
            conditions.append(Order.order_date < _day_start(filters.end_date) + timedelta(days=1))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            matching_customers = select(Customer.id).where(
                Customer.organization_id == ctx.organization_id, Customer.name.ilike(pattern)
            )
            conditions.append(or_(Order.order_number.ilike(pattern), Order.customer_id.in_(matching_customers)))

        return await paginate(
            self.db,
            Order,
            filters=conditions,
            order_by=[Order.order_date.desc(), Order.id.desc()],
            page=page,
            limit=limit,
        )

    async def list_customer_orders(self, ctx: OrgContext, customer_id: int) -> list[Order]:
        await self._get_customer(ctx, customer_id, require_active=False)
        result = await self.db.execute(
            select(Order)
            .where(Order.organization_id == ctx.organization_id, Order.customer_id == customer_id)
            .order_by(Order.order_date.desc(), Order.id.desc())
        )
        return list(result.unique().scalars().all())

    async def _get_customer(self, ctx: OrgContext, customer_id: int, require_active: bool = True) -> Customer:
        conditions = [Customer.id == customer_id, Customer.organization_id == ctx.organization_id]
        if require_active:
            conditions.append(Customer.is_active.is_(True))
        result = await self.db.execute(select(Customer).where(*conditions))
        customer = result.scalars().first()
        if customer is None:
            raise CustomerNotFound(customer_id)
        return customer

    # ── create ───────────────────────────────────────────────────────────────

    async def create_order(self, ctx: OrgContext, payload: OrderCreate) -> Order:
        """
        Create a draft order: validate the customer, price every line, allocate
        an order number, reserve stock for every line and insert the rows.

        Raises:
            CustomerNotFound, ValidationError, InvalidQuantity, ProductNotFound,
            InsufficientStock, ConcurrencyConflict (after retries), PersistenceError
        """
        lines = [LineRequest(item.product_id, item.quantity, item.unit_price) for item in payload.items]
        order_id = await self._with_retry("create_order", lambda: self._create_order_once(ctx, payload, lines))
        return await self.get_order(ctx, order_id)

    async def _create_order_once(self, ctx: OrgContext, payload: OrderCreate, lines: list[LineRequest]) -> int:
        async with unit_of_work(self.db, "create_order"):
            customer = await self._get_customer(ctx, payload.customer_id)
            pricing = await price_order(ctx, lines, self.db)
            order_number = await allocate_order_number(ctx, self.db)
            await InventoryLedger(self.db, ctx).reserve_many(stock_lines(pricing.lines))

            order = Order(
                organization_id=ctx.organization_id,
                customer_id=customer.id,
                order_number=order_number,
                order_date=datetime.now(timezone.utc),
                expected_delivery_date=payload.expected_delivery_date,
                status=OrderStatus.DRAFT.value,
                payment_status=PaymentStatus.PENDING.value,
                payment_method=payload.payment_method,
                paid_amount=ZERO,
                shipping_address=payload.shipping_address,
                shipping_city=payload.shipping_city,
                billing_address=payload.billing_address,
                billing_city=payload.billing_city,
                notes=payload.notes,
                subtotal=pricing.totals.subtotal,
                tax_total=pricing.totals.tax_total,
                grand_total=pricing.totals.grand_total,
                created_by_id=ctx.user_id,
            )
            order.items = [
                OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    tax_rate=line.tax_rate,
                    pricing_mode=line.pricing_mode,
                    subtotal=line.subtotal,
                    tax_amount=line.tax_amount,
                    total=line.total,
                )
                for line in pricing.lines
            ]
            self.db.add(order)
            await self.db.flush()
            order_id = order.id

        logger.info(
            "Order created: id=%d number=%s org_id=%d lines=%d grand_total=%s",
            order_id,
            order_number,
            ctx.organization_id,
            len(pricing.lines),
            pricing.totals.grand_total,
        )
        return order_id

    # ── updates ──────────────────────────────────────────────────────────────

    async def update_order_details(self, ctx: OrgContext, order_id: int, payload: OrderDetailsUpdate) -> Order:
        """Edit non-financial fields while the order is still open."""
        async with unit_of_work(self.db, "update_order_details"):
            order = await self._load_order(ctx, order_id)
            if is_terminal(order.status):
                raise ValidationError(f"Order is {order.status} and can no longer be edited", field="status")
            for key, value in payload.model_dump(exclude_unset=True).items():
                setattr(order, key, value)
            order.updated_at = datetime.now(timezone.utc)

        logger.info("Order details updated: id=%d org_id=%d", order_id, ctx.organization_id)
        return await self.get_order(ctx, order_id)

    async def update_status(self, ctx: OrgContext, order_id: int, target: OrderStatus | str) -> Order:
        """
        Move the order along the status graph.

        Entering `cancelled` releases the stock of every line in the same
        transaction. Cancelling an already cancelled order is a no-op.
        """
        await self._with_retry("update_status", lambda: self._update_status_once(ctx, order_id, target))
        return await self.get_order(ctx, order_id)

    async def cancel_order(self, ctx: OrgContext, order_id: int) -> Order:
        return await self.update_status(ctx, order_id, OrderStatus.CANCELLED)

    async def _update_status_once(self, ctx: OrgContext, order_id: int, target: OrderStatus | str) -> None:
        async with unit_of_work(self.db, "update_status"):
            order = await self._load_order(ctx, order_id)
            current = order.status
            if current == OrderStatus.CANCELLED.value and target == OrderStatus.CANCELLED:
                logger.info("Order already cancelled: id=%d org_id=%d", order_id, ctx.organization_id)
                return

            new_status = validate_status_transition(current, target)

            # Compare-and-set on the status we read, so two racing transitions
            # cannot both apply (and cannot both release stock).
            result = await self.db.execute(
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.organization_id == ctx.organization_id,
                    Order.status == current,
                )
                .values(status=new_status.value, updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrencyConflict(resource="order_status")

            if new_status == OrderStatus.CANCELLED:
                released = stock_lines(order.items)
                await InventoryLedger(self.db, ctx).release_many(released)
                logger.info(
                    "Stock released for cancelled order: id=%d org_id=%d lines=%s", order_id, ctx.organization_id, released
                )

        logger.info(
            "Order status changed: id=%d org_id=%d %s -> %s", order_id, ctx.organization_id, current, new_status.value
        )

    async def update_payment_status(
        self,
        ctx: OrgContext,
        order_id: int,
        target: PaymentStatus | str,
        paid_amount: Decimal | None = None,
        payment_method: str | None = None,
    ) -> Order:
        """
        Move the order along the payment graph and record the paid amount.

        `paid` defaults the paid amount to the grand total; `partial` needs an
        amount strictly between zero and the grand total; `refunded` keeps the
        recorded amount unless one is given.
        """
        await self._with_retry(
            "update_payment_status",
            lambda: self._update_payment_once(ctx, order_id, target, paid_amount, payment_method),
        )
        return await self.get_order(ctx, order_id)

    async def _update_payment_once(
        self,
        ctx: OrgContext,
        order_id: int,
        target: PaymentStatus | str,
        paid_amount: Decimal | None,
        payment_method: str | None,
    ) -> None:
        async with unit_of_work(self.db, "update_payment_status"):
            order = await self._load_order(ctx, order_id)
            current = order.payment_status
            new_status = validate_payment_transition(current, target)
            amount = self._resolve_paid_amount(order, new_status, paid_amount)

            values: dict[str, Any] = {
                "payment_status": new_status.value,
                "paid_amount": amount,
                "updated_at": datetime.now(timezone.utc),
            }
            if payment_method is not None:
                values["payment_method"] = payment_method

            result = await self.db.execute(
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.organization_id == ctx.organization_id,
                    Order.payment_status == current,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrencyConflict(resource="order_payment")

        logger.info(
            "Order payment changed: id=%d org_id=%d %s -> %s paid=%s",
            order_id,
            ctx.organization_id,
            current,
            new_status.value,
            amount,
        )

    @staticmethod
    def _resolve_paid_amount(order: Order, target: PaymentStatus, paid_amount: Decimal | None) -> Decimal:
        grand_total = to_money(order.grand_total)
        if paid_amount is None:
            if target == PaymentStatus.PAID:
                return grand_total
            if target == PaymentStatus.PARTIAL:
                raise ValidationError("A partial payment requires paid_amount", field="paid_amount")
            return to_money(order.paid_amount)

        amount = to_money(paid_amount)
        if amount < ZERO or amount > grand_total:
            raise ValidationError(
                f"paid_amount must be between 0 and the order total {grand_total}", field="paid_amount"
            )
        if target == PaymentStatus.PARTIAL and not ZERO < amount < grand_total:
            raise ValidationError(
                "A partial payment must be greater than 0 and less than the order total", field="paid_amount"
            )
        return amount

    # ── delete ───────────────────────────────────────────────────────────────

    async def delete_order(self, ctx: OrgContext, order_id: int) -> None:
        """
        Hard-delete a draft order, returning its reserved stock.

        Raises:
            InsufficientRole, OrderNotFound, OrderNotDeletable
        """
        require_role(ctx, MembershipRole.ADMIN)
        await self._with_retry("delete_order", lambda: self._delete_order_once(ctx, order_id))

    async def _delete_order_once(self, ctx: OrgContext, order_id: int) -> None:
        async with unit_of_work(self.db, "delete_order"):
            order = await self._load_order(ctx, order_id)
            ensure_deletable(order.id, order.status)
            lines = stock_lines(order.items)

            await InventoryLedger(self.db, ctx).release_many(lines)
            await self.db.execute(
                delete(OrderItem).where(OrderItem.order_id == order_id).execution_options(synchronize_session=False)
            )
            result = await self.db.execute(
                delete(Order)
                .where(
                    Order.id == order_id,
                    Order.organization_id == ctx.organization_id,
                    Order.status == OrderStatus.DRAFT.value,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConcurrencyConflict(resource="order_delete")
            self.db.expunge(order)

        logger.info("Order deleted: id=%d org_id=%d released_lines=%d", order_id, ctx.organization_id, len(lines))
