"""
Inventory Ledger

Authoritative stock counts with atomic reservation and release.

Every mutation is a single conditional UPDATE against the stock counter, so
the availability check and the decrement cannot be separated by another
transaction. The ledger never commits: callers run it inside the same unit
of work as the order-row change that triggered it.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.exceptions import InsufficientStock, ProductNotFound, ValidationError
from orderdesk.models.product import Product
from orderdesk.services.org_access_service import OrgContext
from orderdesk.services.pricing_service import validate_quantity

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Stock counter operations scoped to one organization."""

    def __init__(self, db: AsyncSession, ctx: OrgContext):
        self.db = db
        self.ctx = ctx

    async def reserve(self, product_id: int, quantity: int) -> None:
        """
        Atomically decrement stock by `quantity`.

        Raises:
            InvalidQuantity: quantity is not a positive integer
            ProductNotFound: product missing, inactive or in another organization
            InsufficientStock: current stock is below `quantity`
        """
        validate_quantity(quantity, product_id)
        result = await self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.organization_id == self.ctx.organization_id,
                Product.is_active.is_(True),
                Product.stock_quantity >= quantity,
            )
            .values(stock_quantity=Product.stock_quantity - quantity, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        row = await self._stock_row(product_id)
        if row is None or not row.is_active:
            raise ProductNotFound(product_id)
        logger.warning(
            "Reservation rejected: org_id=%s product_id=%s requested=%s available=%s",
            self.ctx.organization_id,
            product_id,
            quantity,
            row.stock_quantity,
        )
        raise InsufficientStock(product_id, quantity, available=row.stock_quantity, product_name=row.name)

    async def release(self, product_id: int, quantity: int) -> None:
        """
        Atomically increment stock by `quantity`.

        Callers must only release quantities they previously reserved.
        Inactive products still take their stock back.
        """
        validate_quantity(quantity, product_id)
        result = await self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.organization_id == self.ctx.organization_id)
            .values(stock_quantity=Product.stock_quantity + quantity, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ProductNotFound(product_id)

    async def reserve_many(self, lines: Iterable[tuple[int, int]]) -> None:
        """
        Reserve every (product_id, quantity) pair.

        A failure leaves earlier reservations in the open transaction; the
        enclosing unit of work rolls all of them back together.
        """
        for product_id, quantity in lines:
            await self.reserve(product_id, quantity)

    async def release_many(self, lines: Iterable[tuple[int, int]]) -> None:
        for product_id, quantity in lines:
            await self.release(product_id, quantity)

    async def adjust(self, product_id: int, delta: int) -> int:
        """
        Apply a signed manual stock correction and return the new stock.

        Raises:
            ValidationError: delta is zero or not an integer
            ProductNotFound: product not in this organization
            InsufficientStock: the correction would make stock negative
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise ValidationError("Stock adjustment must be a non-zero integer", field="quantity")

        result = await self.db.execute(
            update(Product)
            .where(
                Product.id == product_id,
                Product.organization_id == self.ctx.organization_id,
                Product.stock_quantity >= -delta,
            )
            .values(stock_quantity=Product.stock_quantity + delta, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        row = await self._stock_row(product_id)
        if row is None:
            raise ProductNotFound(product_id)
        if result.rowcount != 1:
            raise InsufficientStock(product_id, -delta, available=row.stock_quantity, product_name=row.name)

        logger.info(
            "Stock adjusted: org_id=%s product_id=%s delta=%s new_stock=%s",
            self.ctx.organization_id,
            product_id,
            delta,
            row.stock_quantity,
        )
        return row.stock_quantity

    async def _stock_row(self, product_id: int):
        result = await self.db.execute(
            select(Product.stock_quantity, Product.is_active, Product.name).where(
                Product.id == product_id, Product.organization_id == self.ctx.organization_id
            )
        )
        return result.first()


async def list_low_stock(ctx: OrgContext, db: AsyncSession) -> list[Product]:
    """Active products whose stock is at or below their reorder threshold."""
    result = await db.execute(
        select(Product)
        .where(
            Product.organization_id == ctx.organization_id,
            Product.is_active.is_(True),
            Product.stock_quantity <= Product.reorder_threshold,
        )
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
