"""
Org Access Guard

Resolves the tenant context for a request: given the authenticated user id
and the organization id the client claims to act in, returns an OrgContext
or raises one of the tenant-boundary errors.

The guard authorizes the context only. Every query downstream still filters
on `organization_id = ctx.organization_id`; services accept the context as a
required argument so that filter cannot be skipped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.constants.roles import MembershipRole, is_role_at_least
from orderdesk.exceptions import InsufficientRole, InvalidOrgId, OrgAccessDenied, OrgContextMissing
from orderdesk.models.organization import Membership, Organization

logger = logging.getLogger(__name__)

_ORG_ID_PATTERN = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class OrgContext:
    """Validated tenant context consumed by every scoped operation."""

    organization_id: int
    user_id: int
    role: str
    organization_name: str | None = None

    def has_role(self, minimum: str) -> bool:
        return is_role_at_least(self.role, minimum)


def parse_org_id(raw: Any) -> int:
    """
    Parse a claimed organization id.

    Raises:
        OrgContextMissing: nothing was supplied
        InvalidOrgId: the value is not a well-formed positive integer
    """
    if raw is None:
        raise OrgContextMissing()
    if isinstance(raw, bool):
        raise InvalidOrgId(raw)
    if isinstance(raw, int):
        if raw <= 0:
            raise InvalidOrgId(raw)
        return raw

    text = str(raw).strip()
    if not text:
        raise OrgContextMissing()
    if not _ORG_ID_PATTERN.match(text):
        raise InvalidOrgId(raw)
    value = int(text)
    if value <= 0:
        raise InvalidOrgId(raw)
    return value


async def resolve_org_context(user_id: int, claimed_org_id: Any, db: AsyncSession) -> OrgContext:
    """
    Validate that `user_id` may act inside the claimed organization.

    Side-effect free and idempotent; safe to call several times per request.

    Raises:
        OrgContextMissing, InvalidOrgId, OrgAccessDenied
    """
    org_id = parse_org_id(claimed_org_id)

    result = await db.execute(
        select(Membership, Organization)
        .join(Organization, Organization.id == Membership.organization_id)
        .where(Membership.user_id == user_id, Membership.organization_id == org_id)
    )
    row = result.first()

    if row is None:
        # Unknown organizations are indistinguishable from foreign ones.
        logger.warning("Org access denied: user_id=%s org_id=%s reason=no_membership", user_id, org_id)
        raise OrgAccessDenied(reason="no_membership")

    membership, organization = row
    if not membership.is_active:
        logger.warning("Org access denied: user_id=%s org_id=%s reason=membership_inactive", user_id, org_id)
        raise OrgAccessDenied(
            message="Your access to this organization has been deactivated.",
            reason="membership_inactive",
        )
    if not organization.is_active:
        logger.warning("Org access denied: user_id=%s org_id=%s reason=organization_inactive", user_id, org_id)
        raise OrgAccessDenied(message="This organization is currently inactive.", reason="organization_inactive")

    return OrgContext(
        organization_id=organization.id,
        user_id=user_id,
        role=membership.role,
        organization_name=organization.name,
    )


def require_role(ctx: OrgContext, minimum: MembershipRole | str) -> OrgContext:
    """Raise InsufficientRole unless the context's role ranks at or above `minimum`."""
    minimum_value = minimum.value if isinstance(minimum, MembershipRole) else minimum
    if not ctx.has_role(minimum_value):
        raise InsufficientRole(required_role=minimum_value, actual_role=ctx.role)
    return ctx
