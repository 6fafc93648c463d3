"""
Customer Service

Tenant-scoped customer CRUD. Customers are soft-deleted so their orders keep
a valid reference.
"""

import logging
import secrets

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.database import is_unique_violation, unit_of_work
from orderdesk.exceptions import CustomerNotFound, DuplicateResource
from orderdesk.models.customer import Customer
from orderdesk.schemas.customer import CustomerCreate, CustomerUpdate
from orderdesk.services.org_access_service import OrgContext
from orderdesk.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)


def generate_customer_code() -> str:
    return f"CUST-{secrets.token_hex(4).upper()}"


async def get_customer(ctx: OrgContext, customer_id: int, db: AsyncSession) -> Customer:
    result = await db.execute(
        select(Customer)
        .where(Customer.id == customer_id, Customer.organization_id == ctx.organization_id)
        .execution_options(populate_existing=True)
    )
    customer = result.scalars().first()
    if customer is None:
        raise CustomerNotFound(customer_id)
    return customer


async def list_customers(
    ctx: OrgContext,
    db: AsyncSession,
    search: str | None = None,
    segment: str | None = None,
    customer_type: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 50,
) -> Page[Customer]:
    conditions = [Customer.organization_id == ctx.organization_id]
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(Customer.name.ilike(pattern), Customer.customer_code.ilike(pattern), Customer.email.ilike(pattern))
        )
    if segment:
        conditions.append(Customer.segment == segment)
    if customer_type:
        conditions.append(Customer.customer_type == customer_type)
    if is_active is not None:
        conditions.append(Customer.is_active.is_(is_active))

    return await paginate(db, Customer, conditions, [Customer.name.asc(), Customer.id.asc()], page, limit)


async def create_customer(ctx: OrgContext, data: CustomerCreate, db: AsyncSession) -> Customer:
    """Create a customer, generating a customer code when none is given."""
    values = data.model_dump(mode="json", exclude={"credit_limit"})
    values["credit_limit"] = data.credit_limit
    code = values.pop("customer_code") or generate_customer_code()

    async with unit_of_work(db, "create_customer"):
        existing = await db.execute(
            select(Customer.id).where(Customer.organization_id == ctx.organization_id, Customer.customer_code == code)
        )
        if existing.first() is not None:
            raise DuplicateResource("Customer", "customer_code", code)

        customer = Customer(organization_id=ctx.organization_id, customer_code=code, created_by_id=ctx.user_id, **values)
        db.add(customer)
        try:
            await db.flush()
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            raise DuplicateResource("Customer", "customer_code", code) from exc
        customer_id = customer.id

    logger.info("Customer created: id=%d code=%s org_id=%d", customer_id, code, ctx.organization_id)
    return await get_customer(ctx, customer_id, db)


async def update_customer(ctx: OrgContext, customer_id: int, updates: CustomerUpdate, db: AsyncSession) -> Customer:
    """Apply a partial update; only keys present in `updates` are changed."""
    changes = updates.model_dump(exclude_unset=True)
    for key in ("customer_type", "segment"):
        if changes.get(key) is not None:
            changes[key] = changes[key].value

    async with unit_of_work(db, "update_customer"):
        customer = await get_customer(ctx, customer_id, db)
        for key, value in changes.items():
            setattr(customer, key, value)

    logger.info("Customer updated: id=%d org_id=%d", customer_id, ctx.organization_id)
    return await get_customer(ctx, customer_id, db)


async def deactivate_customer(ctx: OrgContext, customer_id: int, db: AsyncSession) -> Customer:
    async with unit_of_work(db, "deactivate_customer"):
        customer = await get_customer(ctx, customer_id, db)
        customer.is_active = False

    logger.info("Customer deactivated: id=%d org_id=%d", customer_id, ctx.organization_id)
    return await get_customer(ctx, customer_id, db)
