"""
Pagination Utilities

Offset pagination (page + limit) for tenant-scoped listings.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from fastapi import Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from orderdesk.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results plus the totals needed to render a pager"""

    items: list[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = settings.default_page_limit

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


class PageResponse(BaseModel, Generic[T]):
    """Standard paginated response model"""

    items: list[T]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def from_page(cls, page: Page, items: list[Any]) -> "PageResponse":
        return cls(items=items, total=page.total, page=page.page, limit=page.limit, pages=page.pages)


def clamp_page(page: int | None, limit: int | None) -> tuple[int, int]:
    """Normalise page/limit into (page >= 1, 1 <= limit <= max_page_limit)."""
    page = page if page and page > 0 else 1
    if not limit or limit <= 0:
        limit = settings.default_page_limit
    return page, min(limit, settings.max_page_limit)


async def get_total_count(db: AsyncSession, model, filters: list = None) -> int:
    """
    Get total count of items matching filters.

    Args:
        db: Database session
        model: SQLAlchemy model class
        filters: Optional list of filter conditions

    Returns:
        Total count
    """
    query = select(func.count(model.id))

    if filters:
        for f in filters:
            query = query.where(f)

    result = await db.execute(query)
    return result.scalar() or 0


async def paginate(db: AsyncSession, model, filters: list, order_by: list, page: int, limit: int) -> Page:
    """Run a filtered, ordered offset query and its count."""
    page, limit = clamp_page(page, limit)
    total = await get_total_count(db, model, filters)

    query = select(model)
    for f in filters:
        query = query.where(f)
    query = query.order_by(*order_by).offset((page - 1) * limit).limit(limit)

    result = await db.execute(query)
    return Page(items=list(result.unique().scalars().all()), total=total, page=page, limit=limit)


class PaginationParams:
    """
    FastAPI dependency for pagination parameters.

    Usage:
        @router.get("/items")
        async def list_items(pagination: PaginationParams = Depends()):
            ...
    """

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number, starting at 1"),
        limit: int = Query(
            default=settings.default_page_limit,
            ge=1,
            le=settings.max_page_limit,
            description="Number of items per page",
        ),
    ):
        self.page = page
        self.limit = limit
