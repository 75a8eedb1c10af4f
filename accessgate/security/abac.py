"""
Attribute-Based Access Control (ABAC) Engine

Evaluates boolean policies over actor, resource and environment attributes.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, Field

from config import Settings, get_settings
from accessgate.models.actors import EmploymentStatus, JobLevel
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.resources import SecurityLevel
from accessgate.storage.base import AttributeProvider

from .environment import is_working_hours


class ABACContext(BaseModel):
    """
    Attributes available to ABAC policies.

    - Subject (actor): department, location, employment status, job level
    - Resource: department, security level
    - Environment: time of access, network origin, working-hours window

    A window bound left as ``None`` falls back to the global settings.
    """

    # Actor attributes
    user_department: Optional[str] = None
    user_location: Optional[str] = None
    user_employment_status: Optional[EmploymentStatus] = None
    user_job_level: Optional[JobLevel] = None

    # Resource attributes
    resource_department: Optional[str] = None
    resource_security_level: Optional[SecurityLevel] = None

    # Environment attributes
    time_of_access: datetime = Field(default_factory=datetime.now)
    ip_address: Optional[str] = None
    working_hours_start: Optional[int] = None
    working_hours_end: Optional[int] = None


Policy = Callable[[ABACContext], bool]


# Predefined policies.
# Missing attributes never satisfy an equality test.

def same_department_policy(ctx: ABACContext) -> bool:
    """Same department: actor and resource belong to the same department."""
    return ctx.user_department is not None and ctx.user_department == ctx.resource_department


def same_department_unless_public_policy(ctx: ABACContext) -> bool:
    """Same department, unless the resource is PUBLIC."""
    return ctx.resource_security_level == SecurityLevel.PUBLIC or same_department_policy(ctx)


def active_employee_policy(ctx: ABACContext) -> bool:
    """Active employee: can update own profile."""
    return ctx.user_employment_status == EmploymentStatus.ACTIVE


def department_manager_policy(ctx: ABACContext) -> bool:
    """Department manager: can access resources of their own department."""
    return ctx.user_job_level == JobLevel.MANAGER and same_department_policy(ctx)


def hr_department_policy(ctx: ABACContext) -> bool:
    """HR department: can access HR documents."""
    return ctx.user_department == "HR" and ctx.resource_department == "HR"


def finance_payroll_policy(ctx: ABACContext) -> bool:
    """Finance manager during working hours: can approve payroll."""
    return (
        ctx.user_department == "Finance"
        and ctx.user_job_level == JobLevel.MANAGER
        and is_working_hours(
            ctx.time_of_access, ctx.working_hours_start, ctx.working_hours_end
        )
    )


class AttributePolicyEvaluator:
    """
    Attribute-Based Access Control Engine.

    Policies are plain predicates over an :class:`ABACContext`; the engine
    turns their result into a decision and composes several with OR/AND.
    """

    model = AccessModel.ABAC

    def __init__(
        self,
        provider: Optional[AttributeProvider] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the ABAC engine.

        Args:
            provider: Source of actor/resource attribute bundles, needed only
                by :meth:`build_context`
            settings: Source of the working-hours window stamped on built contexts
        """
        self.provider = provider
        self.settings = settings or get_settings()

    def evaluate(self, context: ABACContext, policy: Policy) -> AccessDecision:
        """
        Evaluate one policy.

        Args:
            context: Attribute context
            policy: Predicate to apply

        Returns:
            Allow if the predicate holds
        """
        if policy(context):
            return AccessDecision.allow(self.model, "Policy conditions met")
        return AccessDecision.deny(self.model, "Policy conditions not met")

    def evaluate_any(self, context: ABACContext, policies: Iterable[Policy]) -> AccessDecision:
        """OR composition: the first allowing policy wins."""
        for policy in policies:
            decision = self.evaluate(context, policy)
            if decision.allowed:
                return decision
        return AccessDecision.deny(self.model, "None of the policies allowed access")

    def evaluate_all(self, context: ABACContext, policies: Iterable[Policy]) -> AccessDecision:
        """AND composition: the first denying policy wins."""
        for policy in policies:
            if not self.evaluate(context, policy).allowed:
                return AccessDecision.deny(self.model, "One or more policies denied access")
        return AccessDecision.allow(self.model, "All policies allowed access")

    async def build_context(
        self,
        actor_id: str,
        resource_id: str,
        ip_address: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ABACContext:
        """
        Build an evaluation context from the attribute provider.

        Raises:
            NotFoundError: If the actor or resource attributes are missing
            StoreUnavailableError: If the provider cannot be reached
        """
        if self.provider is None:
            raise RuntimeError("ABAC engine has no attribute provider")

        actor_attrs = await self.provider.get_actor_attributes(actor_id)
        resource_attrs = await self.provider.get_resource_attributes(resource_id)

        return ABACContext(
            user_department=actor_attrs.department,
            user_location=actor_attrs.location,
            user_employment_status=actor_attrs.employment_status,
            user_job_level=actor_attrs.job_level,
            resource_department=resource_attrs.department,
            resource_security_level=resource_attrs.security_level,
            time_of_access=now or datetime.now(),
            ip_address=ip_address,
            working_hours_start=self.settings.working_hours_start,
            working_hours_end=self.settings.working_hours_end,
        )
