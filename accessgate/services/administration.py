"""
Policy Administration Service

Rule and role-permission changes, each gated by an RBAC permission.
"""

from typing import Optional

import structlog

from accessgate.models.actors import Actor
from accessgate.models.decisions import AccessDecision
from accessgate.models.permissions import RolePermission
from accessgate.models.rules import Rule, RuleCondition, RuleEffect
from accessgate.security.audit import AuditLogger
from accessgate.security.unified import UnifiedAccessEngine

logger = structlog.get_logger(__name__)

MANAGE_RULES = "manage_rules"
MANAGE_ROLES = "manage_roles"


class PolicyAdministrationService:
    """
    Administrative operations on the policy data.

    Rule changes require ``manage_rules``; role-permission changes require
    ``manage_roles``. The authorising decision is returned with the result so
    callers can report a denial.
    """

    def __init__(self, engine: UnifiedAccessEngine, audit: Optional[AuditLogger] = None):
        self.engine = engine
        self.audit = audit or engine.audit

    async def _authorize(self, actor: Actor, permission_name: str) -> AccessDecision:
        decision = await self.engine.decide(actor, permission_name=permission_name)
        if not decision.allowed:
            logger.warning(
                "administration_denied",
                actor_id=actor.id,
                permission=permission_name,
                reason=decision.reason,
            )
        return decision

    async def create_rule(
        self,
        actor: Actor,
        name: str,
        condition: RuleCondition | dict,
        effect: RuleEffect,
        description: Optional[str] = None,
    ) -> tuple[AccessDecision, Optional[Rule]]:
        """Create a rule at the end of the evaluation order."""
        decision = await self._authorize(actor, MANAGE_RULES)
        if not decision.allowed:
            return decision, None

        rule = await self.engine.rubac.create_rule(name, condition, effect, description)
        self._audit(
            "log_rule_change", actor.id, "created", rule.id, rule.name,
            effect=rule.effect.value,
            position=rule.position,
        )
        return decision, rule

    async def update_rule(
        self,
        actor: Actor,
        rule_id: str,
        **changes
    ) -> tuple[AccessDecision, Optional[Rule]]:
        """
        Update a rule (name, condition, effect, description, is_active).

        Raises:
            NotFoundError: If the rule does not exist
        """
        decision = await self._authorize(actor, MANAGE_RULES)
        if not decision.allowed:
            return decision, None

        rule = await self.engine.rubac.update_rule(rule_id, **changes)
        self._audit(
            "log_rule_change", actor.id, "updated", rule.id, rule.name,
            fields=sorted(changes),
        )
        return decision, rule

    async def assign_role_permission(
        self,
        actor: Actor,
        role_id: str,
        permission_name: str,
        allowed: bool = True,
    ) -> tuple[AccessDecision, Optional[RolePermission]]:
        """Upsert a (role, permission) row."""
        decision = await self._authorize(actor, MANAGE_ROLES)
        if not decision.allowed:
            return decision, None

        row = await self.engine.rbac.assign_permission(role_id, permission_name, allowed)
        self._audit(
            "log_role_permission_change", actor.id, role_id, permission_name,
            assigned=True,
            allowed=allowed,
        )
        return decision, row

    async def remove_role_permission(
        self,
        actor: Actor,
        role_id: str,
        permission_name: str,
    ) -> tuple[AccessDecision, bool]:
        """Delete a (role, permission) row; the bool reports whether it existed."""
        decision = await self._authorize(actor, MANAGE_ROLES)
        if not decision.allowed:
            return decision, False

        removed = await self.engine.rbac.remove_permission(role_id, permission_name)
        if removed:
            self._audit(
                "log_role_permission_change", actor.id, role_id, permission_name,
                assigned=False,
            )
        return decision, removed

    def _audit(self, method: str, actor_id: str, *args, **kwargs) -> None:
        if self.audit is None:
            return
        try:
            getattr(self.audit, method)(actor_id, *args, **kwargs)
        except Exception:
            logger.exception("audit_record_failed", actor_id=actor_id, audit_method=method)
