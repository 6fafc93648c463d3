"""
Membership Role Constants

Roles a user can hold inside one organization, and their ranking.
"""

from enum import Enum


class MembershipRole(str, Enum):
    """Enumeration of organization membership roles."""

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


# Role hierarchy (higher number = more permissions)
ROLE_HIERARCHY = {
    MembershipRole.MEMBER: 1,
    MembershipRole.MANAGER: 2,
    MembershipRole.ADMIN: 3,
    MembershipRole.OWNER: 4,
}

# Role given to a user invited without an explicit role
DEFAULT_ROLE = MembershipRole.MEMBER


def get_role_level(role: str) -> int:
    """Return the hierarchy level of a role name, 0 for unknown roles."""
    try:
        return ROLE_HIERARCHY.get(MembershipRole(role), 0)
    except ValueError:
        return 0


def is_role_at_least(role: str, minimum: str) -> bool:
    """
    Check if `role` ranks at or above `minimum`.

    Args:
        role: Role held by the member
        minimum: Lowest role allowed to perform the action

    Returns:
        bool: True if role >= minimum in the hierarchy
    """
    return get_role_level(role) >= get_role_level(minimum) > 0
