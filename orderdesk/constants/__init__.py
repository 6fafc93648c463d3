from .roles import ROLE_HIERARCHY, MembershipRole, is_role_at_least

__all__ = ["MembershipRole", "ROLE_HIERARCHY", "is_role_at_least"]
