"""
Role-Based Access Control (RBAC) Engine

Checks whether a role has been granted a named permission.
"""

from typing import Iterable, Optional

import structlog

from config import Settings, get_settings
from accessgate.exceptions import InvalidInputError
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.permissions import RolePermission, validate_permission_name
from accessgate.storage.base import RolePermissionStore

logger = structlog.get_logger(__name__)


class RolePermissionChecker:
    """
    Role-Based Access Control Engine.

    A role holds a permission when its (role, permission) row exists and is
    allowed. The configured super-role bypasses every check.
    """

    model = AccessModel.RBAC

    def __init__(self, store: RolePermissionStore, settings: Optional[Settings] = None):
        """
        Initialize the RBAC engine.

        Args:
            store: Role and role-permission lookups
            settings: Settings providing ``super_role_name``
        """
        self.store = store
        self.settings = settings or get_settings()

    async def evaluate(self, role_id: str, permission_name: str) -> AccessDecision:
        """
        Check if a role has a specific permission.

        Args:
            role_id: ID of the actor's role
            permission_name: Permission to check

        Returns:
            Allow if the role is the super-role or holds the permission
        """
        _check_permission_name(permission_name)

        role = await self.store.find_role(role_id)
        if role is None:
            return AccessDecision.deny(self.model, "Role not found")

        if role.name == self.settings.super_role_name:
            return AccessDecision.allow(
                self.model, f"{role.name} role has all permissions"
            )

        row = await self.store.find_role_permission(role_id, permission_name)
        if row is not None and row.allowed:
            return AccessDecision.allow(self.model, f"Role has {permission_name} permission")

        return AccessDecision.deny(
            self.model, f"Role does not have {permission_name} permission"
        )

    async def evaluate_any(self, role_id: str, permission_names: Iterable[str]) -> AccessDecision:
        """Allow if at least one permission is held; checked in the given order."""
        names = list(permission_names)
        for permission_name in names:
            decision = await self.evaluate(role_id, permission_name)
            if decision.allowed:
                return decision

        return AccessDecision.deny(
            self.model,
            f"Role does not have any of the required permissions: {', '.join(names)}",
        )

    async def evaluate_all(self, role_id: str, permission_names: Iterable[str]) -> AccessDecision:
        """Deny on the first permission the role does not hold."""
        for permission_name in permission_names:
            decision = await self.evaluate(role_id, permission_name)
            if not decision.allowed:
                return AccessDecision.deny(
                    self.model, f"Role missing required permission: {permission_name}"
                )

        return AccessDecision.allow(self.model, "Role has all required permissions")

    # ------------------------------------------------------------------
    # Role administration
    # ------------------------------------------------------------------

    async def get_role_permissions(self, role_id: str) -> list[str]:
        """Names of the permissions a role is allowed."""
        rows = await self.store.list_role_permissions(role_id)
        return sorted(row.permission_name for row in rows if row.allowed)

    async def assign_permission(
        self,
        role_id: str,
        permission_name: str,
        allowed: bool = True
    ) -> RolePermission:
        """Upsert the (role, permission) row."""
        _check_permission_name(permission_name)
        row = await self.store.upsert_role_permission(
            RolePermission(role_id=role_id, permission_name=permission_name, allowed=allowed)
        )
        logger.info(
            "role_permission_assigned",
            role_id=role_id,
            permission=permission_name,
            allowed=allowed,
        )
        return row

    async def remove_permission(self, role_id: str, permission_name: str) -> bool:
        """Delete the (role, permission) row; returns whether it existed."""
        _check_permission_name(permission_name)
        removed = await self.store.delete_role_permission(role_id, permission_name)
        logger.info(
            "role_permission_removed",
            role_id=role_id,
            permission=permission_name,
            existed=removed,
        )
        return removed


def _check_permission_name(permission_name: str) -> None:
    try:
        validate_permission_name(permission_name)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e
