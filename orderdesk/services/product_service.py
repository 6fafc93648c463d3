"""
Product Service

Tenant-scoped catalog CRUD. Stock levels change only through the inventory
ledger; price edits never touch existing order items, which keep their
snapshot.
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.constants.roles import MembershipRole
from orderdesk.database import is_unique_violation, unit_of_work
from orderdesk.exceptions import DuplicateResource, ProductNotFound
from orderdesk.models.product import Product
from orderdesk.schemas.product import ProductCreate, ProductUpdate
from orderdesk.services.inventory_service import InventoryLedger
from orderdesk.services.org_access_service import OrgContext, require_role
from orderdesk.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)


async def get_product(ctx: OrgContext, product_id: int, db: AsyncSession) -> Product:
    """Return a product of the context organization, active or not."""
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id, Product.organization_id == ctx.organization_id)
        .execution_options(populate_existing=True)
    )
    product = result.scalars().first()
    if product is None:
        raise ProductNotFound(product_id)
    return product


async def list_products(
    ctx: OrgContext,
    db: AsyncSession,
    category: str | None = None,
    is_active: bool | None = None,
    low_stock: bool = False,
    search: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> Page[Product]:
    conditions = [Product.organization_id == ctx.organization_id]
    if category:
        conditions.append(Product.category == category)
    if is_active is not None:
        conditions.append(Product.is_active.is_(is_active))
    if low_stock:
        conditions.append(Product.stock_quantity <= Product.reorder_threshold)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern), Product.barcode.ilike(pattern)))

    return await paginate(db, Product, conditions, [Product.name.asc(), Product.id.asc()], page, limit)


async def create_product(ctx: OrgContext, data: ProductCreate, db: AsyncSession) -> Product:
    """Create a catalog product; SKUs are unique per organization."""
    require_role(ctx, MembershipRole.MANAGER)
    async with unit_of_work(db, "create_product"):
        existing = await db.execute(
            select(Product.id).where(Product.organization_id == ctx.organization_id, Product.sku == data.sku)
        )
        if existing.first() is not None:
            raise DuplicateResource("Product", "sku", data.sku)

        product = Product(organization_id=ctx.organization_id, created_by_id=ctx.user_id, **data.model_dump())
        db.add(product)
        try:
            await db.flush()
        except IntegrityError as exc:
            # a concurrent create won the race past the check above
            if not is_unique_violation(exc):
                raise
            raise DuplicateResource("Product", "sku", data.sku) from exc
        product_id = product.id

    logger.info("Product created: id=%d sku=%s org_id=%d", product_id, data.sku, ctx.organization_id)
    return await get_product(ctx, product_id, db)


async def update_product(ctx: OrgContext, product_id: int, updates: ProductUpdate, db: AsyncSession) -> Product:
    """
    Apply a partial update to a product.

    Only fields present in `updates` are changed. Stock is not editable here;
    use `adjust_stock`.
    """
    require_role(ctx, MembershipRole.MANAGER)
    async with unit_of_work(db, "update_product"):
        product = await get_product(ctx, product_id, db)
        for key, value in updates.model_dump(exclude_unset=True).items():
            setattr(product, key, value)

    logger.info("Product updated: id=%d org_id=%d", product_id, ctx.organization_id)
    return await get_product(ctx, product_id, db)


async def deactivate_product(ctx: OrgContext, product_id: int, db: AsyncSession) -> Product:
    """Soft-delete: existing orders keep referencing the row."""
    require_role(ctx, MembershipRole.MANAGER)
    async with unit_of_work(db, "deactivate_product"):
        product = await get_product(ctx, product_id, db)
        product.is_active = False

    logger.info("Product deactivated: id=%d org_id=%d", product_id, ctx.organization_id)
    return await get_product(ctx, product_id, db)


async def adjust_stock(ctx: OrgContext, product_id: int, delta: int, db: AsyncSession, reason: str | None = None) -> Product:
    """Apply a signed stock correction atomically."""
    require_role(ctx, MembershipRole.MANAGER)
    async with unit_of_work(db, "adjust_stock"):
        await InventoryLedger(db, ctx).adjust(product_id, delta)

    if reason:
        logger.info("Stock adjustment reason: product_id=%d org_id=%d reason=%s", product_id, ctx.organization_id, reason)
    return await get_product(ctx, product_id, db)
