"""
Discretionary Access Control (DAC) Engine

Owner-controlled access: owners always have access, everyone else needs an
explicit grant carrying the right capability bit.
"""

from datetime import datetime

import structlog

from accessgate.exceptions import InvalidInputError
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.permissions import Grant, GrantPermissions
from accessgate.models.resources import ResourceAction
from accessgate.storage.base import GrantStore, ResourceStore

logger = structlog.get_logger(__name__)


def parse_action(action: ResourceAction | str) -> ResourceAction:
    """Coerce an action name, rejecting anything but view/edit/share/delete."""
    try:
        return ResourceAction(action)
    except ValueError as e:
        raise InvalidInputError(f"Unsupported action: {action!r}") from e


def _required_bit(grant: Grant, action: ResourceAction) -> bool:
    match action:
        case ResourceAction.VIEW:
            return grant.can_view
        case ResourceAction.EDIT:
            return grant.can_edit
        case ResourceAction.SHARE:
            return grant.can_share
        case ResourceAction.DELETE:
            # No separate delete bit
            return grant.can_edit


class OwnershipGrantChecker:
    """
    Discretionary Access Control Engine.

    Resolves ownership first and only then consults the single grant row for
    the (resource, actor) pair.
    """

    model = AccessModel.DAC

    def __init__(self, resources: ResourceStore, grants: GrantStore):
        """
        Initialize the DAC engine.

        Args:
            resources: Resource lookups (for ownership)
            grants: Grant lookups and mutations
        """
        self.resources = resources
        self.grants = grants

    async def evaluate(
        self,
        actor_id: str,
        resource_id: str,
        action: ResourceAction
    ) -> AccessDecision:
        """
        Check DAC permissions for an actor performing ``action`` on a resource.

        Args:
            actor_id: Acting actor
            resource_id: Target resource
            action: view, edit, share or delete

        Returns:
            AccessDecision attributed to DAC
        """
        action = parse_action(action)

        resource = await self.resources.find_resource(resource_id)
        if resource is None:
            return AccessDecision.deny(self.model, "Resource not found")

        if resource.owner_id == actor_id:
            return AccessDecision.allow(self.model, "User is the resource owner")

        grant = await self.grants.find_grant(resource_id, actor_id)
        if grant is None:
            return AccessDecision.deny(
                self.model, "No explicit permission granted for this resource"
            )

        if _required_bit(grant, action):
            return AccessDecision.allow(self.model, f"User has {action.value} permission")

        return AccessDecision.deny(
            self.model,
            f"User does not have {action.value} permission for this resource",
        )

    async def is_owner(self, actor_id: str, resource_id: str) -> bool:
        """Check if an actor owns a resource. Unknown resources have no owner."""
        resource = await self.resources.find_resource(resource_id)
        return resource is not None and resource.owner_id == actor_id

    async def grant(
        self,
        resource_id: str,
        grantee_id: str,
        permissions: GrantPermissions,
        granted_by: str,
    ) -> Grant:
        """
        Grant (or replace) a grantee's permissions on a resource.

        The new bits replace any existing grant for the pair.
        """
        grant = await self.grants.upsert_grant(
            Grant(
                resource_id=resource_id,
                grantee_id=grantee_id,
                can_view=permissions.can_view,
                can_edit=permissions.can_edit,
                can_share=permissions.can_share,
                granted_by=granted_by,
                granted_at=datetime.utcnow(),
            )
        )
        logger.info(
            "grant_upserted",
            resource_id=resource_id,
            grantee_id=grantee_id,
            granted_by=granted_by,
            **permissions.model_dump(),
        )
        return grant

    async def revoke(self, resource_id: str, grantee_id: str) -> bool:
        """
        Revoke a grantee's grant. Revoking a missing grant is a no-op.

        Returns:
            True if a grant existed and was removed
        """
        removed = await self.grants.delete_grant(resource_id, grantee_id)
        logger.info(
            "grant_revoked",
            resource_id=resource_id,
            grantee_id=grantee_id,
            existed=removed,
        )
        return removed

    async def list_grants(self, resource_id: str) -> list[Grant]:
        """All grants on a resource."""
        return await self.grants.list_grants(resource_id)
