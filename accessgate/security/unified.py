"""
Unified Access Engine

Composes MAC, RuBAC, RBAC, ABAC and DAC into one deterministic decision.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from config import Settings, get_settings
from accessgate.exceptions import (
    AccessControlError,
    DecisionTimeoutError,
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
)
from accessgate.models.actors import Actor
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.permissions import validate_permission_name
from accessgate.models.resources import Resource, ResourceAction
from accessgate.models.rules import RuleContext
from accessgate.storage.base import (
    AttributeProvider,
    GrantStore,
    ResourceStore,
    RolePermissionStore,
    RuleStore,
)

from .abac import AttributePolicyEvaluator, same_department_policy
from .audit import AuditLogger
from .dac import OwnershipGrantChecker, parse_action
from .mac import ClearanceComparator
from .rbac import RolePermissionChecker
from .rubac import RuleEvaluator

logger = structlog.get_logger(__name__)

DEFAULT_GATE_ORDER: tuple[AccessModel, ...] = (
    AccessModel.MAC,
    AccessModel.RUBAC,
    AccessModel.RBAC,
    AccessModel.ABAC,
    AccessModel.DAC,
)


class DecisionContext(BaseModel):
    """Everything the gates of one decision can see."""

    actor: Actor
    action: ResourceAction
    resource: Optional[Resource] = None
    permission_name: Optional[str] = None
    network_origin: Optional[str] = None
    environment: dict[str, Any] = Field(default_factory=dict)
    now: datetime
    trail: list[AccessDecision] = Field(
        default_factory=list,
        description="Decisions of the gates that ran, in order"
    )


class Gate(ABC):
    """
    One step of the unified evaluation.

    ``evaluate`` returns None when the gate does not apply to the request.
    ``is_terminal`` says whether a produced decision ends the evaluation.
    """

    model: AccessModel

    @abstractmethod
    async def evaluate(self, ctx: DecisionContext) -> Optional[AccessDecision]:
        pass

    def is_terminal(self, decision: AccessDecision, ctx: DecisionContext) -> bool:
        return not decision.allowed


class ClearanceGate(Gate):
    """MAC: runs whenever a resource is targeted; a denial is final."""

    model = AccessModel.MAC

    def __init__(self, comparator: ClearanceComparator):
        self.comparator = comparator

    async def evaluate(self, ctx: DecisionContext) -> Optional[AccessDecision]:
        if ctx.resource is None:
            return None
        return self.comparator.evaluate(ctx.actor.clearance_level, ctx.resource.security_level)


class RuleGate(Gate):
    """RuBAC: always runs."""

    model = AccessModel.RUBAC

    def __init__(self, evaluator: RuleEvaluator):
        self.evaluator = evaluator

    async def evaluate(self, ctx: DecisionContext) -> Optional[AccessDecision]:
        rule_context = RuleContext(
            actor_department=ctx.actor.department,
            resource_department=ctx.resource.department if ctx.resource else None,
            network_origin=ctx.network_origin or "unknown",
            extra=ctx.environment,
            now=ctx.now,
        )
        return await self.evaluator.evaluate(rule_context)


class RolePermissionGate(Gate):
    """RBAC: opt-in, runs only when the caller names a permission."""

    model = AccessModel.RBAC

    def __init__(self, checker: RolePermissionChecker):
        self.checker = checker

    async def evaluate(self, ctx: DecisionContext) -> Optional[AccessDecision]:
        if ctx.permission_name is None:
            return None
        return await self.checker.evaluate(ctx.actor.role_id, ctx.permission_name)


class AttributeGate(Gate):
    """
    ABAC: same-department policy for targeted resources.

    PUBLIC resources bypass a denial. When attribute bundles cannot be
    fetched the gate is skipped (if so configured) so that DAC still runs.
    """

    model = AccessModel.ABAC

    def __init__(self, evaluator: AttributePolicyEvaluator, skip_on_lookup_failure: bool = True):
        self.evaluator = evaluator
        self.skip_on_lookup_failure = skip_on_lookup_failure

    async def evaluate(self, ctx: DecisionContext) -> Optional[AccessDecision]:
        if ctx.resource is None:
            return None

        try:
            abac_context = await self.evaluator.build_context(
                ctx.actor.id,
                ctx.resource.id,
                ip_address=ctx.network_origin,
                now=ctx.now,
            )
        except (NotFoundError, StoreUnavailableError) as e:
            if not self.skip_on_lookup_failure:
                raise
            logger.warning(
                "abac_gate_skipped",
                actor_id=ctx.actor.id,
                resource_id=ctx.resource.id,
                error=str(e),
            )
            return None

        return self.evaluator.evaluate(abac_context, same_department_policy)

    def is_terminal(self, decision: AccessDecision, ctx: DecisionContext) -> bool:
        return not decision.allowed and not ctx.resource.is_public


class OwnershipGate(Gate):
    """
    DAC: the final gate for targeted resources; its decision is returned.

    A denied ``view`` of a PUBLIC resource is overridden to allow.
    """

    model = AccessModel.DAC

    def __init__(self, checker: OwnershipGrantChecker):
        self.checker = checker

    async def evaluate(self, ctx: DecisionContext) -> Optional[AccessDecision]:
        if ctx.resource is None:
            return None

        decision = await self.checker.evaluate(ctx.actor.id, ctx.resource.id, ctx.action)
        if (
            not decision.allowed
            and ctx.action == ResourceAction.VIEW
            and ctx.resource.is_public
        ):
            return AccessDecision.allow(AccessModel.MAC, "Public resource")
        return decision

    def is_terminal(self, decision: AccessDecision, ctx: DecisionContext) -> bool:
        return True


class UnifiedAccessEngine:
    """
    Unified access control engine.

    Evaluates its gates in priority order (by default MAC → RuBAC → RBAC →
    ABAC → DAC). The first terminal decision is returned; a denial from an
    earlier gate is never overridden by a later one.

    Store errors propagate to the caller; they are engine failures, never
    denials. Timeouts raise :class:`DecisionTimeoutError` and cancellation
    propagates unchanged.
    """

    def __init__(
        self,
        resources: ResourceStore,
        roles: RolePermissionStore,
        grants: GrantStore,
        rules: RuleStore,
        attributes: AttributeProvider,
        audit: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
        gates: Optional[Sequence[Gate]] = None,
    ):
        """
        Initialize the engine.

        Args:
            resources: Resource lookups
            roles: Role permission lookups
            grants: DAC grant lookups
            rules: RuBAC rule set
            attributes: ABAC attribute bundles
            audit: Optional audit sink; failures to record never affect decisions
            settings: Engine settings
            clock: Returns the current local time
            gates: Override the gate sequence
        """
        self.settings = settings or get_settings()
        self.resources = resources
        self.audit = audit
        self.clock = clock

        self.mac = ClearanceComparator()
        self.rubac = RuleEvaluator(rules, self.settings, clock)
        self.rbac = RolePermissionChecker(roles, self.settings)
        self.abac = AttributePolicyEvaluator(attributes, self.settings)
        self.dac = OwnershipGrantChecker(resources, grants)

        self.gates: list[Gate] = list(gates) if gates is not None else [
            ClearanceGate(self.mac),
            RuleGate(self.rubac),
            RolePermissionGate(self.rbac),
            AttributeGate(self.abac, self.settings.abac_skip_on_lookup_failure),
            OwnershipGate(self.dac),
        ]

    @classmethod
    def from_store(cls, store, **kwargs) -> "UnifiedAccessEngine":
        """Build an engine on a store implementing every store interface."""
        return cls(store, store, store, store, store, **kwargs)

    @property
    def gate_order(self) -> list[AccessModel]:
        """Models of the configured gates, in evaluation order."""
        return [gate.model for gate in self.gates]

    async def decide(
        self,
        actor: Actor,
        resource_id: Optional[str] = None,
        action: ResourceAction | str = ResourceAction.VIEW,
        permission_name: Optional[str] = None,
        *,
        network_origin: Optional[str] = None,
        environment: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> AccessDecision:
        """
        Decide whether ``actor`` may perform ``action``.

        Args:
            actor: Authenticated actor
            resource_id: Target resource, or None for resource-less checks
            action: view, edit, share or delete
            permission_name: Permission the call site requires (enables RBAC)
            network_origin: Client address for network rules
            environment: Extra key/value context for rule attribute terms
            timeout: Seconds before the decision is abandoned (defaults to
                ``decision_timeout_seconds``)

        Returns:
            The final AccessDecision

        Raises:
            InvalidInputError: Malformed action, permission name or resource ID
            DecisionTimeoutError: The decision exceeded its time budget
            AccessControlError: A store failed while evaluating
        """
        action = parse_action(action)
        if permission_name is not None:
            try:
                validate_permission_name(permission_name)
            except ValueError as e:
                raise InvalidInputError(str(e)) from e
        if resource_id is not None and not str(resource_id).strip():
            raise InvalidInputError("Resource ID must not be empty")

        timeout = timeout if timeout is not None else self.settings.decision_timeout_seconds
        evaluation = self._evaluate(
            actor, resource_id, action, permission_name, network_origin, environment or {}
        )

        try:
            if timeout is None:
                decision = await evaluation
            else:
                decision = await asyncio.wait_for(evaluation, timeout)
        except asyncio.TimeoutError as e:
            error = DecisionTimeoutError(timeout)
            self._record_error(actor, error, resource_id, action)
            raise error from e
        except AccessControlError as e:
            self._record_error(actor, e, resource_id, action)
            raise

        self._record_decision(actor, decision, resource_id, action, permission_name, network_origin)
        return decision

    async def can_access(
        self,
        actor: Actor,
        resource_id: str,
        action: ResourceAction | str = ResourceAction.VIEW,
        **kwargs
    ) -> bool:
        """Simple boolean check for access."""
        decision = await self.decide(actor, resource_id, action, **kwargs)
        return decision.allowed

    async def filter_accessible(
        self,
        actor: Actor,
        resource_ids: Iterable[str],
        action: ResourceAction | str = ResourceAction.VIEW,
        **kwargs
    ) -> list[str]:
        """Filter resource IDs to those the actor may access, keeping order."""
        accessible = []
        for resource_id in resource_ids:
            if await self.can_access(actor, resource_id, action, **kwargs):
                accessible.append(resource_id)
        return accessible

    async def _evaluate(
        self,
        actor: Actor,
        resource_id: Optional[str],
        action: ResourceAction,
        permission_name: Optional[str],
        network_origin: Optional[str],
        environment: dict[str, Any],
    ) -> AccessDecision:
        resource = None
        if resource_id is not None:
            resource = await self.resources.find_resource(resource_id)
            if resource is None:
                return AccessDecision.deny(AccessModel.UNIFIED, "Resource not found")

        ctx = DecisionContext(
            actor=actor,
            action=action,
            resource=resource,
            permission_name=permission_name,
            network_origin=network_origin,
            environment=environment,
            now=self.clock(),
        )

        for gate in self.gates:
            decision = await gate.evaluate(ctx)
            if decision is None:
                continue

            ctx.trail.append(decision)
            if gate.is_terminal(decision, ctx):
                if not decision.allowed:
                    logger.info(
                        "gate_denied",
                        gate=gate.model.value,
                        actor_id=actor.id,
                        resource_id=resource_id,
                        reason=decision.reason,
                    )
                return decision

        # No resource targeted: only RBAC can have granted anything
        if resource is None and permission_name is not None:
            for decision in reversed(ctx.trail):
                if decision.model == AccessModel.RBAC:
                    return decision

        return AccessDecision.deny(AccessModel.UNIFIED, "No access control checks passed")

    def _record_decision(
        self,
        actor: Actor,
        decision: AccessDecision,
        resource_id: Optional[str],
        action: ResourceAction,
        permission_name: Optional[str],
        network_origin: Optional[str],
    ) -> None:
        if self.audit is None:
            return
        try:
            self.audit.log_decision(
                actor_id=actor.id,
                role_id=actor.role_id,
                decision=decision,
                resource_id=resource_id,
                requested_action=action.value,
                permission_name=permission_name,
                ip_address=network_origin,
            )
        except Exception:
            logger.exception("audit_record_failed", actor_id=actor.id, resource_id=resource_id)

    def _record_error(
        self,
        actor: Actor,
        error: BaseException,
        resource_id: Optional[str],
        action: ResourceAction,
    ) -> None:
        logger.error(
            "decision_failed",
            actor_id=actor.id,
            resource_id=resource_id,
            error=str(error),
            error_type=type(error).__name__,
        )
        if self.audit is None:
            return
        try:
            self.audit.log_decision_error(
                actor_id=actor.id,
                error=error,
                resource_id=resource_id,
                requested_action=action.value,
            )
        except Exception:
            logger.exception("audit_record_failed", actor_id=actor.id, resource_id=resource_id)
