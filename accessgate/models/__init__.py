"""
AccessGate Models Package

Pydantic models for the AccessGate engine.
"""

from .actors import (
    Actor,
    ActorAttributes,
    EmploymentStatus,
    JobLevel,
)
from .decisions import (
    AccessDecision,
    AccessModel,
)
from .permissions import (
    Grant,
    GrantPermissions,
    Role,
    RolePermission,
)
from .resources import (
    Resource,
    ResourceAction,
    ResourceAttributes,
    SecurityLevel,
)
from .rules import (
    AttributeTerm,
    DepartmentTerm,
    NetworkTerm,
    Rule,
    RuleCondition,
    RuleContext,
    RuleEffect,
    TimeWindow,
    TimeWindowTerm,
)

__all__ = [
    # Actors
    "Actor",
    "ActorAttributes",
    "EmploymentStatus",
    "JobLevel",
    # Decisions
    "AccessDecision",
    "AccessModel",
    # Permissions
    "Grant",
    "GrantPermissions",
    "Role",
    "RolePermission",
    # Resources
    "Resource",
    "ResourceAction",
    "ResourceAttributes",
    "SecurityLevel",
    # Rules
    "AttributeTerm",
    "DepartmentTerm",
    "NetworkTerm",
    "Rule",
    "RuleCondition",
    "RuleContext",
    "RuleEffect",
    "TimeWindow",
    "TimeWindowTerm",
]
