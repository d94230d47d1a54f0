"""User roles and permission hierarchy for DriverDocs.

Role Hierarchy (descending permissions):
- ADMIN: Company settings, document types, credit purchases
- MANAGER: Drivers, uploads, AI scans, document edits
- VIEWER: Read-only access to drivers, documents and compliance
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles carried in the bearer token's `role` claim"""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    VIEWER = "VIEWER"


# Each role includes permissions of all roles below it
ROLE_HIERARCHY = {
    UserRole.ADMIN: {UserRole.ADMIN, UserRole.MANAGER, UserRole.VIEWER},
    UserRole.MANAGER: {UserRole.MANAGER, UserRole.VIEWER},
    UserRole.VIEWER: {UserRole.VIEWER},
}


def has_permission(user_role: UserRole, required_role: UserRole) -> bool:
    """Check if user_role satisfies required_role.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.MANAGER)
        True
        >>> has_permission(UserRole.VIEWER, UserRole.MANAGER)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())
