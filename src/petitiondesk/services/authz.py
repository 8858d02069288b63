"""Authorization service for role-based access control.

This module provides:
- Permission definitions for all petition operations
- Role classes with permission mappings
- The Principal passed explicitly into every guarded operation
- AuthorizationService with check and require helpers

Roles are carried in signed tokens; the role claim is trusted only because
the authentication service issued it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Permission definitions
# ---------------------------------------------------------------------------


class Permission(str, Enum):
    """Permissions for petition operations.

    Permission names follow the pattern: ACTION_RESOURCE.
    """

    SUBMIT_PETITION = "submit_petition"
    VIEW_OWN_PETITIONS = "view_own_petitions"
    VIEW_ALL_PETITIONS = "view_all_petitions"
    VIEW_PETITION_STATS = "view_petition_stats"
    UPDATE_PETITION_STATUS = "update_petition_status"
    EDIT_PETITION = "edit_petition"
    DELETE_PETITION = "delete_petition"


# ---------------------------------------------------------------------------
# Role classes
# ---------------------------------------------------------------------------


class RoleClass(str, Enum):
    """Role classes; values match the role column and the token role claim."""

    ADMIN = "admin"
    CITIZEN = "citizen"


ROLE_PERMISSIONS: dict[RoleClass, frozenset[Permission]] = {
    RoleClass.ADMIN: frozenset(
        [
            Permission.SUBMIT_PETITION,
            Permission.VIEW_ALL_PETITIONS,
            Permission.VIEW_PETITION_STATS,
            Permission.UPDATE_PETITION_STATUS,
            Permission.EDIT_PETITION,
            Permission.DELETE_PETITION,
        ]
    ),
    RoleClass.CITIZEN: frozenset(
        [
            Permission.SUBMIT_PETITION,
            Permission.VIEW_OWN_PETITIONS,
        ]
    ),
}


# ---------------------------------------------------------------------------
# Principal representation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Principal:
    """An authenticated caller, as established from a verified token."""

    principal_id: UUID
    role: RoleClass
    email: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleClass.ADMIN


# ---------------------------------------------------------------------------
# Authorization errors
# ---------------------------------------------------------------------------


class AuthorizationError(Exception):
    """Base exception for authorization failures."""

    def __init__(self, message: str, permission: Permission | None = None) -> None:
        self.permission = permission
        super().__init__(message)


class UnauthorizedError(AuthorizationError):
    """Raised when a guarded operation is attempted without a principal."""


class ForbiddenError(AuthorizationError):
    """Raised when a principal lacks the required permission."""


# ---------------------------------------------------------------------------
# Authorization Service
# ---------------------------------------------------------------------------


class AuthorizationService:
    """Checks role permissions for principals."""

    def get_role_permissions(self, role_class: RoleClass) -> frozenset[Permission]:
        """Get the permissions granted by a role class."""
        return ROLE_PERMISSIONS.get(role_class, frozenset())

    def has_permission(self, principal: Principal | None, permission: Permission) -> bool:
        """Check if a principal holds a permission.

        Anonymous callers hold no permissions.
        """
        if principal is None:
            return False
        return permission in self.get_role_permissions(principal.role)

    def require_permission(self, principal: Principal | None, permission: Permission) -> None:
        """Require a permission or raise.

        Raises:
            UnauthorizedError: If there is no principal.
            ForbiddenError: If the principal's role lacks the permission.
        """
        if principal is None:
            raise UnauthorizedError(
                "Authentication required",
                permission=permission,
            )

        if not self.has_permission(principal, permission):
            logger.warning(
                "Permission denied: principal=%s, role=%s, permission=%s",
                principal.principal_id,
                principal.role.value,
                permission.value,
            )
            raise ForbiddenError(
                f"Permission denied: {permission.value}",
                permission=permission,
            )
