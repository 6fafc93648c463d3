"""
Shared FastAPI dependencies.

`get_org_context` is the single entry point for tenant-scoped routes: it
authenticates the caller, validates the claimed organization and checks the
membership. Routes never read the organization header themselves.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.auth import get_current_user
from orderdesk.config import settings
from orderdesk.constants.roles import MembershipRole
from orderdesk.database import get_db
from orderdesk.models.user import User
from orderdesk.services.order_service import OrderService
from orderdesk.services.org_access_service import OrgContext, require_role, resolve_org_context


async def get_org_context(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrgContext:
    claimed = getattr(request.state, "claimed_org_id", None)
    if claimed is None:
        claimed = request.headers.get(settings.org_header_name)

    ctx = await resolve_org_context(current_user.id, claimed, db)
    request.state.org_context = ctx
    return ctx


def require_org_role(minimum: MembershipRole):
    """
    Dependency factory restricting a route to members at or above `minimum`.

    Usage:
        @router.delete("/{order_id}")
        async def delete(ctx: OrgContext = Depends(require_org_role(MembershipRole.ADMIN))):
            ...
    """

    async def _check(ctx: OrgContext = Depends(get_org_context)) -> OrgContext:
        return require_role(ctx, minimum)

    return _check


async def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)
