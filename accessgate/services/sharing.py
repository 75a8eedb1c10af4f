"""
Resource Sharing Service

Owner-initiated DAC operations: share, revoke and list grants on a resource.
"""

from typing import Optional

import structlog

from accessgate.models.actors import Actor
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.permissions import Grant, GrantPermissions
from accessgate.security.audit import AuditLogger
from accessgate.security.unified import UnifiedAccessEngine

logger = structlog.get_logger(__name__)


class ResourceSharingService:
    """
    Share/revoke workflow on top of the DAC checker.

    Only a resource's owner may change or inspect its grants. Every attempt
    is audited, denied ones included.
    """

    def __init__(self, engine: UnifiedAccessEngine, audit: Optional[AuditLogger] = None):
        """
        Initialize the service.

        Args:
            engine: Engine whose DAC checker and attribute provider are used
            audit: Audit sink (defaults to the engine's)
        """
        self.engine = engine
        self.dac = engine.dac
        self.audit = audit or engine.audit

    async def share(
        self,
        owner: Actor,
        resource_id: str,
        grantee_id: str,
        permissions: GrantPermissions,
    ) -> AccessDecision:
        """
        Grant ``grantee_id`` the given permissions on a resource.

        Re-sharing replaces the grantee's previous permissions.

        Raises:
            NotFoundError: If the grantee does not exist
        """
        if not await self.dac.is_owner(owner.id, resource_id):
            reason = "Only the resource owner can share documents"
            self._audit(owner.id, resource_id, grantee_id, "share_denied", reason)
            return AccessDecision.deny(AccessModel.DAC, reason)

        # Unknown grantees raise NotFoundError
        await self.engine.abac.provider.get_actor_attributes(grantee_id)

        await self.dac.grant(resource_id, grantee_id, permissions, granted_by=owner.id)
        reason = "Permission granted successfully"
        self._audit(
            owner.id, resource_id, grantee_id, "granted", reason,
            permissions=permissions.model_dump(),
        )
        return AccessDecision.allow(AccessModel.DAC, reason)

    async def revoke(self, owner: Actor, resource_id: str, grantee_id: str) -> AccessDecision:
        """
        Revoke a grantee's grant.

        Reports success only if a grant existed; the underlying delete is
        idempotent either way.
        """
        if not await self.dac.is_owner(owner.id, resource_id):
            reason = "Only the resource owner can revoke permissions"
            self._audit(owner.id, resource_id, grantee_id, "revoke_denied", reason)
            return AccessDecision.deny(AccessModel.DAC, reason)

        if not await self.dac.revoke(resource_id, grantee_id):
            return AccessDecision.deny(AccessModel.DAC, "No permission exists for this user")

        reason = "Permission revoked successfully"
        self._audit(owner.id, resource_id, grantee_id, "revoked", reason)
        return AccessDecision.allow(AccessModel.DAC, reason)

    async def list_permissions(
        self,
        owner: Actor,
        resource_id: str
    ) -> tuple[AccessDecision, list[Grant]]:
        """List the grants on a resource; owners only."""
        if not await self.dac.is_owner(owner.id, resource_id):
            return (
                AccessDecision.deny(
                    AccessModel.DAC, "Only resource owner can view permissions"
                ),
                [],
            )

        grants = await self.dac.list_grants(resource_id)
        return AccessDecision.allow(AccessModel.DAC, "User is the resource owner"), grants

    def _audit(self, actor_id, resource_id, grantee_id, action, reason, **kwargs) -> None:
        if self.audit is None:
            return
        try:
            self.audit.log_grant_change(
                actor_id=actor_id,
                resource_id=resource_id,
                grantee_id=grantee_id,
                action=action,
                reason=reason,
                **kwargs,
            )
        except Exception:
            logger.exception("audit_record_failed", actor_id=actor_id, resource_id=resource_id)
