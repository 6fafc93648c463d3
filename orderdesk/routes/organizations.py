"""
Organization Routes

POST   /api/v1/organizations                          → create organization (caller becomes owner)
GET    /api/v1/organizations/mine                     → caller's active organizations
POST   /api/v1/organizations/{id}/members             → add or reactivate a member (admin+)
DELETE /api/v1/organizations/{id}/members/{user_id}   → deactivate a member (admin+)

Member routes take the organization from the path; it must match the
organization context header.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.auth import get_current_user
from orderdesk.constants.roles import MembershipRole
from orderdesk.database import get_db
from orderdesk.dependencies import require_org_role
from orderdesk.exceptions import OrgAccessDenied
from orderdesk.models.user import User
from orderdesk.schemas.organization import (
    MembershipCreate,
    MembershipResponse,
    MyOrganization,
    OrganizationCreate,
    OrganizationResponse,
)
from orderdesk.services import organization_service
from orderdesk.services.org_access_service import OrgContext

router = APIRouter(tags=["Organizations"])
logger = logging.getLogger(__name__)

admin_context = require_org_role(MembershipRole.ADMIN)


def _ensure_same_org(ctx: OrgContext, organization_id: int) -> None:
    if ctx.organization_id != organization_id:
        logger.warning(
            "Organization path/header mismatch: path=%d header=%d user_id=%d",
            organization_id,
            ctx.organization_id,
            ctx.user_id,
        )
        raise OrgAccessDenied(reason="organization_mismatch")


@router.post("/organizations", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    payload: OrganizationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await organization_service.create_organization(current_user.id, payload, db)


@router.get("/organizations/mine", response_model=list[MyOrganization])
async def my_organizations(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    rows = await organization_service.list_user_organizations(current_user.id, db)
    return [
        MyOrganization(organization=OrganizationResponse.model_validate(organization), role=role)
        for organization, role in rows
    ]


@router.post(
    "/organizations/{organization_id}/members",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    organization_id: int,
    payload: MembershipCreate,
    ctx: OrgContext = Depends(admin_context),
    db: AsyncSession = Depends(get_db),
):
    _ensure_same_org(ctx, organization_id)
    return await organization_service.add_member(ctx, payload.user_id, payload.role, db)


@router.delete("/organizations/{organization_id}/members/{user_id}", response_model=MembershipResponse)
async def remove_member(
    organization_id: int,
    user_id: int,
    ctx: OrgContext = Depends(admin_context),
    db: AsyncSession = Depends(get_db),
):
    _ensure_same_org(ctx, organization_id)
    return await organization_service.deactivate_member(ctx, user_id, db)
