"""
Organization Service

Creation of organizations and management of their memberships.
All functions accept an injected AsyncSession.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.constants.roles import MembershipRole, get_role_level
from orderdesk.database import unit_of_work
from orderdesk.exceptions import InsufficientRole, ResourceNotFoundError, ValidationError
from orderdesk.models.organization import Membership, Organization
from orderdesk.models.user import User
from orderdesk.schemas.organization import OrganizationCreate
from orderdesk.services.org_access_service import OrgContext, require_role

logger = logging.getLogger(__name__)


async def create_organization(user_id: int, data: OrganizationCreate, db: AsyncSession) -> Organization:
    """Create an organization and make the creator its owner."""
    async with unit_of_work(db, "create_organization"):
        organization = Organization(**data.model_dump())
        db.add(organization)
        await db.flush()
        db.add(
            Membership(
                user_id=user_id,
                organization_id=organization.id,
                role=MembershipRole.OWNER.value,
                assigned_by_id=user_id,
            )
        )

    logger.info("Organization created: id=%d owner_id=%d", organization.id, user_id)
    return organization


async def list_user_organizations(user_id: int, db: AsyncSession) -> list[tuple[Organization, str]]:
    """Return (organization, role) for each active membership of the user in an active organization."""
    result = await db.execute(
        select(Organization, Membership.role)
        .join(Membership, Membership.organization_id == Organization.id)
        .where(
            Membership.user_id == user_id,
            Membership.is_active.is_(True),
            Organization.is_active.is_(True),
        )
        .order_by(Organization.name.asc())
    )
    return [(organization, role) for organization, role in result.all()]


async def _get_membership(organization_id: int, user_id: int, db: AsyncSession) -> Membership | None:
    result = await db.execute(
        select(Membership)
        .where(Membership.organization_id == organization_id, Membership.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def add_member(ctx: OrgContext, user_id: int, role: MembershipRole | str, db: AsyncSession) -> Membership:
    """
    Add a user to the context organization, or reactivate and re-role an
    existing membership.

    Admins cannot grant a role above their own.
    """
    require_role(ctx, MembershipRole.ADMIN)
    role_value = MembershipRole(role).value
    if get_role_level(role_value) > get_role_level(ctx.role):
        raise InsufficientRole(required_role=role_value, actual_role=ctx.role)

    async with unit_of_work(db, "add_member"):
        user = await db.execute(select(User.id).where(User.id == user_id, User.is_active.is_(True)))
        if user.first() is None:
            raise ResourceNotFoundError("User", user_id)

        membership = await _get_membership(ctx.organization_id, user_id, db)
        if membership is None:
            membership = Membership(
                user_id=user_id,
                organization_id=ctx.organization_id,
                role=role_value,
                assigned_by_id=ctx.user_id,
            )
            db.add(membership)
        else:
            membership.role = role_value
            membership.is_active = True
            membership.assigned_by_id = ctx.user_id

    logger.info("Member added: org_id=%d user_id=%d role=%s", ctx.organization_id, user_id, role_value)
    return await _get_membership(ctx.organization_id, user_id, db)


async def deactivate_member(ctx: OrgContext, user_id: int, db: AsyncSession) -> Membership:
    """
    Deactivate a membership. Only owners may remove owners, and nobody may
    remove themselves.
    """
    require_role(ctx, MembershipRole.ADMIN)
    if user_id == ctx.user_id:
        raise ValidationError("You cannot remove yourself from the organization", field="user_id")

    async with unit_of_work(db, "deactivate_member"):
        membership = await _get_membership(ctx.organization_id, user_id, db)
        if membership is None:
            raise ResourceNotFoundError("Membership", user_id)
        if membership.role == MembershipRole.OWNER.value:
            require_role(ctx, MembershipRole.OWNER)
        membership.is_active = False

    logger.info("Member deactivated: org_id=%d user_id=%d", ctx.organization_id, user_id)
    return await _get_membership(ctx.organization_id, user_id, db)
