"""
Rule Models

Defines the rule-based access control (RuBAC) data model: rules, their
effects, and the small tagged predicate language their conditions use.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class RuleEffect(str, Enum):
    """Effect of a matching rule."""
    ALLOW = "ALLOW"
    DENY = "DENY"


class TimeWindow(str, Enum):
    """Named time windows a rule can test."""
    WORK_HOURS = "workHours"
    AFTER_HOURS = "afterHours"


DEPARTMENT_MATCH = "match"
COMPANY_NETWORK = "companyNetwork"


class TimeWindowTerm(BaseModel):
    """Matches when the current time falls inside (or outside) working hours."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["time"] = "time"
    window: TimeWindow


class DepartmentTerm(BaseModel):
    """
    Matches on the actor's department.

    ``department="match"`` requires actor and resource departments to be equal;
    any other value is compared literally against the actor's department.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["department"] = "department"
    department: str = Field(..., min_length=1)


class NetworkTerm(BaseModel):
    """
    Matches on the request's network origin.

    ``origin="companyNetwork"`` matches the configured private ranges; any
    other value must equal the origin exactly.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["network"] = "network"
    origin: str = Field(..., min_length=1)


class AttributeTerm(BaseModel):
    """Matches when ``context.extra[key]`` equals ``value``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["attribute"] = "attribute"
    key: str = Field(..., min_length=1)
    value: Any


RuleTerm = Annotated[
    Union[TimeWindowTerm, DepartmentTerm, NetworkTerm, AttributeTerm],
    Field(discriminator="kind"),
]


class RuleCondition(BaseModel):
    """
    A conjunction of rule terms.

    Every term must match for the condition to match; a condition with no
    terms always matches.
    """

    model_config = ConfigDict(frozen=True)

    terms: list[RuleTerm] = Field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "RuleCondition":
        """
        Parse the flat JSON condition form.

        ``{"time": "workHours", "department": "match", "ipAddress": "companyNetwork",
        "resourceType": "document"}`` becomes four terms; unrecognised keys
        become attribute equality terms.
        """
        terms: list[Any] = []
        for key, value in data.items():
            match key:
                case "time":
                    terms.append(TimeWindowTerm(window=TimeWindow(value)))
                case "department":
                    terms.append(DepartmentTerm(department=value))
                case "ipAddress" | "network":
                    terms.append(NetworkTerm(origin=value))
                case _:
                    terms.append(AttributeTerm(key=key, value=value))
        return cls(terms=terms)

    def to_mapping(self) -> dict[str, Any]:
        """Inverse of :meth:`from_mapping`."""
        data: dict[str, Any] = {}
        for term in self.terms:
            match term:
                case TimeWindowTerm():
                    data["time"] = term.window.value
                case DepartmentTerm():
                    data["department"] = term.department
                case NetworkTerm():
                    data["ipAddress"] = term.origin
                case AttributeTerm():
                    data[term.key] = term.value
        return data


class Rule(BaseModel):
    """
    A system-wide conditional rule.

    Rules are evaluated in ``position`` order (creation order) and the first
    active rule whose condition matches decides. Order is meaningful content.
    """

    id: str = Field(default_factory=lambda: str(uuid4()), description="Rule ID")
    name: str = Field(..., min_length=1, description="Rule name")
    description: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    condition: RuleCondition = Field(default_factory=RuleCondition)
    effect: RuleEffect = Field(..., description="Allow or deny effect")
    position: int = Field(default=0, description="Evaluation order, assigned on creation")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class RuleContext(BaseModel):
    """Request context that rule conditions are matched against."""

    actor_department: Optional[str] = None
    resource_department: Optional[str] = None
    network_origin: Optional[str] = None
    extra: dict[str, Any] = Field(default_factory=dict)
    now: Optional[datetime] = Field(
        default=None,
        description="Evaluation time (defaults to the evaluator's clock)"
    )
