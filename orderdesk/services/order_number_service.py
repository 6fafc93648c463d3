"""
Order Number Generator

Allocates `ORD<year><sequence>` numbers from a counter row per organization
and year. The increment runs inside the caller's transaction, so the number
and the order row it labels are committed (or discarded) together. Numbers
from rolled-back transactions may leave gaps; they are never reused.
"""

import logging
from datetime import date, datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import settings
from orderdesk.exceptions import ConcurrencyConflict
from orderdesk.models.order_counter import OrderNumberCounter
from orderdesk.services.org_access_service import OrgContext

logger = logging.getLogger(__name__)


def format_order_number(year: int, sequence: int, prefix: str | None = None, padding: int | None = None) -> str:
    prefix = settings.order_number_prefix if prefix is None else prefix
    padding = settings.order_number_padding if padding is None else padding
    return f"{prefix}{year}{sequence:0{padding}d}"


async def _increment(db: AsyncSession, organization_id: int, year: int) -> int | None:
    result = await db.execute(
        update(OrderNumberCounter)
        .where(OrderNumberCounter.organization_id == organization_id, OrderNumberCounter.year == year)
        .values(last_value=OrderNumberCounter.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    value = await db.execute(
        select(OrderNumberCounter.last_value).where(
            OrderNumberCounter.organization_id == organization_id, OrderNumberCounter.year == year
        )
    )
    return value.scalar_one()


async def allocate_order_number(ctx: OrgContext, db: AsyncSession, on_date: date | datetime | None = None) -> str:
    """
    Allocate the next order number for the context organization.

    Raises:
        ConcurrencyConflict: another transaction created the year's counter
            row at the same moment; the caller should retry
    """
    year = (on_date or datetime.now(timezone.utc)).year

    sequence = await _increment(db, ctx.organization_id, year)
    if sequence is None:
        # First order of the year for this organization.
        try:
            async with db.begin_nested():
                db.add(OrderNumberCounter(organization_id=ctx.organization_id, year=year, last_value=1))
            sequence = 1
        except IntegrityError as exc:
            logger.info("Order counter race: org_id=%s year=%s", ctx.organization_id, year)
            raise ConcurrencyConflict(resource="order_number") from exc

    number = format_order_number(year, sequence)
    logger.debug("Order number allocated: org_id=%s number=%s", ctx.organization_id, number)
    return number
