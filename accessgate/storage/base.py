"""
Access Store Base Classes

Abstract repository interfaces the evaluators read from and write through.
Implementations own all persistent state; evaluators hold none.

Lookups return ``None`` for missing rows and raise
:class:`~accessgate.exceptions.StoreUnavailableError` on infrastructure
failure. Mutations must be atomic upserts/deletes.
"""

from abc import ABC, abstractmethod
from typing import Optional

from accessgate.models.actors import ActorAttributes
from accessgate.models.permissions import Grant, Role, RolePermission
from accessgate.models.resources import Resource, ResourceAttributes
from accessgate.models.rules import Rule


class ResourceStore(ABC):
    """Read access to protected resources."""

    @abstractmethod
    async def find_resource(self, resource_id: str) -> Optional[Resource]:
        """
        Look up a resource's sensitivity, owner and department.

        Args:
            resource_id: ID of the resource

        Returns:
            The resource or None if it does not exist
        """
        pass


class RolePermissionStore(ABC):
    """Roles and their (role, permission) rows."""

    @abstractmethod
    async def find_role(self, role_id: str) -> Optional[Role]:
        """Get a role by ID."""
        pass

    @abstractmethod
    async def find_role_permission(
        self,
        role_id: str,
        permission_name: str
    ) -> Optional[RolePermission]:
        """
        Look up the single row for a (role, permission) pair.

        Args:
            role_id: ID of the role
            permission_name: Permission to look up

        Returns:
            The row or None if the pair has never been assigned
        """
        pass

    @abstractmethod
    async def list_role_permissions(self, role_id: str) -> list[RolePermission]:
        """List every row for a role."""
        pass

    @abstractmethod
    async def upsert_role_permission(self, row: RolePermission) -> RolePermission:
        """Insert or replace the row for ``(row.role_id, row.permission_name)``."""
        pass

    @abstractmethod
    async def delete_role_permission(self, role_id: str, permission_name: str) -> bool:
        """
        Delete a (role, permission) row.

        Returns:
            True if a row was removed
        """
        pass


class GrantStore(ABC):
    """Explicit per-actor DAC grants."""

    @abstractmethod
    async def find_grant(self, resource_id: str, grantee_id: str) -> Optional[Grant]:
        """Get the grant for a (resource, grantee) pair, if any."""
        pass

    @abstractmethod
    async def list_grants(self, resource_id: str) -> list[Grant]:
        """List all grants on a resource."""
        pass

    @abstractmethod
    async def upsert_grant(self, grant: Grant) -> Grant:
        """
        Insert or replace the grant for ``grant.key``.

        Existing permissions are replaced, never merged.
        """
        pass

    @abstractmethod
    async def delete_grant(self, resource_id: str, grantee_id: str) -> bool:
        """
        Delete a grant. Deleting a missing grant is not an error.

        Returns:
            True if a grant was removed
        """
        pass


class RuleStore(ABC):
    """Ordered RuBAC rules."""

    @abstractmethod
    async def list_active_rules(self) -> list[Rule]:
        """
        List active rules in evaluation (creation) order.

        Returns:
            Active rules sorted by position
        """
        pass

    @abstractmethod
    async def list_rules(self) -> list[Rule]:
        """List all rules, active or not, in evaluation order."""
        pass

    @abstractmethod
    async def get_rule(self, rule_id: str) -> Optional[Rule]:
        """Get a rule by ID."""
        pass

    @abstractmethod
    async def add_rule(self, rule: Rule) -> Rule:
        """
        Append a rule after all existing rules.

        Returns:
            The stored rule with its position assigned
        """
        pass

    @abstractmethod
    async def save_rule(self, rule: Rule) -> Rule:
        """Replace an existing rule, keeping its position."""
        pass


class AttributeProvider(ABC):
    """Attribute bundles for ABAC."""

    @abstractmethod
    async def get_actor_attributes(self, actor_id: str) -> ActorAttributes:
        """
        Fetch an actor's attribute bundle.

        Raises:
            NotFoundError: If the actor is unknown
        """
        pass

    @abstractmethod
    async def get_resource_attributes(self, resource_id: str) -> ResourceAttributes:
        """
        Fetch a resource's attribute bundle.

        Raises:
            NotFoundError: If the resource is unknown
        """
        pass
