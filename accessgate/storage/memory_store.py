"""
In-Memory Access Store

A single-process implementation of every store interface, with optional
JSON file persistence. Suitable for tests, demos and small deployments.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from accessgate.exceptions import NotFoundError, StoreUnavailableError
from accessgate.models.actors import ActorAttributes
from accessgate.models.permissions import Grant, Role, RolePermission
from accessgate.models.resources import Resource, ResourceAttributes
from accessgate.models.rules import Rule

from .base import (
    AttributeProvider,
    GrantStore,
    ResourceStore,
    RolePermissionStore,
    RuleStore,
)

logger = structlog.get_logger(__name__)

_MISSING = object()


class InMemoryAccessStore(
    ResourceStore,
    RolePermissionStore,
    GrantStore,
    RuleStore,
    AttributeProvider,
):
    """
    Dictionary-backed access store.

    Mutations run under one ``asyncio.Lock`` so each upsert/delete (and the
    file write that follows it) is atomic with respect to other coroutines.
    A mutation whose file write fails is rolled back before the error is
    raised, so callers never observe a change they were told had failed.
    """

    def __init__(self, storage_path: Optional[Path | str] = None):
        """
        Initialize the store.

        Args:
            storage_path: Optional JSON file for persistence. Loaded on
                construction if it exists, rewritten after every mutation.
        """
        self._resources: dict[str, Resource] = {}
        self._actors: dict[str, ActorAttributes] = {}
        self._roles: dict[str, Role] = {}
        self._role_permissions: dict[tuple[str, str], RolePermission] = {}
        self._grants: dict[tuple[str, str], Grant] = {}
        self._rules: dict[str, Rule] = {}
        self._next_position = 0
        self._lock = asyncio.Lock()
        self._storage_path = Path(storage_path) if storage_path else None

        if self._storage_path and self._storage_path.exists():
            self._load_from_file()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_from_file(self) -> None:
        """Load all tables from the storage file."""
        try:
            with open(self._storage_path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StoreUnavailableError(
                f"Could not load access store from {self._storage_path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise StoreUnavailableError(
                f"Access store file {self._storage_path} does not hold a JSON object"
            )

        try:
            for item in data.get("resources", []):
                resource = Resource.model_validate(item)
                self._resources[resource.id] = resource
            for actor_id, item in data.get("actors", {}).items():
                self._actors[actor_id] = ActorAttributes.model_validate(item)
            for item in data.get("roles", []):
                role = Role.model_validate(item)
                self._roles[role.id] = role
            for item in data.get("role_permissions", []):
                row = RolePermission.model_validate(item)
                self._role_permissions[(row.role_id, row.permission_name)] = row
            for item in data.get("grants", []):
                grant = Grant.model_validate(item)
                self._grants[grant.key] = grant
            for item in data.get("rules", []):
                rule = Rule.model_validate(item)
                self._rules[rule.id] = rule
                self._next_position = max(self._next_position, rule.position + 1)
        except (ValidationError, AttributeError, TypeError) as e:
            raise StoreUnavailableError(
                f"Malformed access store file {self._storage_path}: {e}"
            ) from e

        logger.info(
            "access_store_loaded",
            path=str(self._storage_path),
            resources=len(self._resources),
            rules=len(self._rules),
            grants=len(self._grants),
        )

    def _save_to_file(self) -> None:
        """Save all tables to the storage file, replacing it atomically."""
        if not self._storage_path:
            return

        data = self.snapshot()
        tmp_path = self._storage_path.with_name(self._storage_path.name + ".tmp")

        try:
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2, default=str)
            os.replace(tmp_path, self._storage_path)
        except OSError as e:
            raise StoreUnavailableError(
                f"Could not write access store to {self._storage_path}: {e}"
            ) from e

    def _put(self, table: dict, key: Any, value: Any) -> None:
        """Set ``table[key]`` and persist; restore the previous value if the write fails."""
        previous = table.get(key, _MISSING)
        table[key] = value
        try:
            self._save_to_file()
        except StoreUnavailableError:
            if previous is _MISSING:
                del table[key]
            else:
                table[key] = previous
            raise

    def _pop(self, table: dict, key: Any) -> bool:
        """Remove ``table[key]`` and persist; reinstate it if the write fails."""
        removed = table.pop(key, _MISSING)
        if removed is _MISSING:
            return False
        try:
            self._save_to_file()
        except StoreUnavailableError:
            table[key] = removed
            raise
        return True

    def snapshot(self) -> dict[str, Any]:
        """Return every table as JSON-compatible data."""
        return {
            "resources": [r.model_dump(mode="json") for r in self._resources.values()],
            "actors": {k: v.model_dump(mode="json") for k, v in self._actors.items()},
            "roles": [r.model_dump(mode="json") for r in self._roles.values()],
            "role_permissions": [
                r.model_dump(mode="json") for r in self._role_permissions.values()
            ],
            "grants": [g.model_dump(mode="json") for g in self._grants.values()],
            "rules": [r.model_dump(mode="json") for r in self._ordered_rules()],
        }

    # ------------------------------------------------------------------
    # Directory data (owned by the resource/user management collaborators)
    # ------------------------------------------------------------------

    async def put_resource(self, resource: Resource) -> Resource:
        """Insert or replace a resource."""
        async with self._lock:
            self._put(self._resources, resource.id, resource)
        return resource

    async def put_actor(self, actor_id: str, attributes: ActorAttributes) -> ActorAttributes:
        """Insert or replace an actor's attribute bundle."""
        async with self._lock:
            self._put(self._actors, actor_id, attributes)
        return attributes

    async def put_role(self, role: Role) -> Role:
        """Insert or replace a role."""
        async with self._lock:
            self._put(self._roles, role.id, role)
        return role

    async def find_role_by_name(self, name: str) -> Optional[Role]:
        """Get a role by name."""
        for role in self._roles.values():
            if role.name == name:
                return role
        return None

    # ------------------------------------------------------------------
    # ResourceStore
    # ------------------------------------------------------------------

    async def find_resource(self, resource_id: str) -> Optional[Resource]:
        return self._resources.get(resource_id)

    # ------------------------------------------------------------------
    # RolePermissionStore
    # ------------------------------------------------------------------

    async def find_role(self, role_id: str) -> Optional[Role]:
        return self._roles.get(role_id)

    async def find_role_permission(
        self,
        role_id: str,
        permission_name: str
    ) -> Optional[RolePermission]:
        return self._role_permissions.get((role_id, permission_name))

    async def list_role_permissions(self, role_id: str) -> list[RolePermission]:
        return [row for (rid, _), row in self._role_permissions.items() if rid == role_id]

    async def upsert_role_permission(self, row: RolePermission) -> RolePermission:
        async with self._lock:
            self._put(self._role_permissions, (row.role_id, row.permission_name), row)
        return row

    async def delete_role_permission(self, role_id: str, permission_name: str) -> bool:
        async with self._lock:
            return self._pop(self._role_permissions, (role_id, permission_name))

    # ------------------------------------------------------------------
    # GrantStore
    # ------------------------------------------------------------------

    async def find_grant(self, resource_id: str, grantee_id: str) -> Optional[Grant]:
        return self._grants.get((resource_id, grantee_id))

    async def list_grants(self, resource_id: str) -> list[Grant]:
        return [g for (rid, _), g in self._grants.items() if rid == resource_id]

    async def upsert_grant(self, grant: Grant) -> Grant:
        async with self._lock:
            self._put(self._grants, grant.key, grant)
        return grant

    async def delete_grant(self, resource_id: str, grantee_id: str) -> bool:
        async with self._lock:
            return self._pop(self._grants, (resource_id, grantee_id))

    # ------------------------------------------------------------------
    # RuleStore
    # ------------------------------------------------------------------

    def _ordered_rules(self) -> list[Rule]:
        return sorted(self._rules.values(), key=lambda r: r.position)

    async def list_active_rules(self) -> list[Rule]:
        return [r for r in self._ordered_rules() if r.is_active]

    async def list_rules(self) -> list[Rule]:
        return self._ordered_rules()

    async def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    async def add_rule(self, rule: Rule) -> Rule:
        async with self._lock:
            stored = rule.model_copy(update={"position": self._next_position})
            self._put(self._rules, stored.id, stored)
            self._next_position += 1
        return stored

    async def save_rule(self, rule: Rule) -> Rule:
        async with self._lock:
            existing = self._rules.get(rule.id)
            if existing is None:
                raise NotFoundError("Rule", rule.id)
            stored = rule.model_copy(update={"position": existing.position})
            self._put(self._rules, stored.id, stored)
        return stored

    # ------------------------------------------------------------------
    # AttributeProvider
    # ------------------------------------------------------------------

    async def get_actor_attributes(self, actor_id: str) -> ActorAttributes:
        attributes = self._actors.get(actor_id)
        if attributes is None:
            raise NotFoundError("Actor", actor_id)
        return attributes

    async def get_resource_attributes(self, resource_id: str) -> ResourceAttributes:
        resource = self._resources.get(resource_id)
        if resource is None:
            raise NotFoundError("Resource", resource_id)
        return ResourceAttributes(
            department=resource.department,
            security_level=resource.security_level,
        )
