"""
Actor Models

Defines the authenticated actor profile handed to the engine by the
authentication layer, and the attribute bundle ABAC reads.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .resources import SecurityLevel


class EmploymentStatus(str, Enum):
    """Employment status of an actor."""
    ACTIVE = "ACTIVE"
    ON_LEAVE = "ON_LEAVE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"


class JobLevel(str, Enum):
    """Job level of an actor."""
    STAFF = "STAFF"
    SENIOR = "SENIOR"
    MANAGER = "MANAGER"
    DIRECTOR = "DIRECTOR"
    EXECUTIVE = "EXECUTIVE"


class Actor(BaseModel):
    """
    An authenticated actor.

    Built once per request by the authentication layer and immutable for the
    duration of a decision.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Actor ID")
    role_id: str = Field(..., min_length=1, description="ID of the actor's role")
    clearance_level: SecurityLevel = Field(
        default=SecurityLevel.PUBLIC,
        description="Security clearance"
    )

    # Organizational attributes (for RuBAC and ABAC)
    department: Optional[str] = Field(default=None, description="Actor's department")
    location: Optional[str] = Field(default=None, description="Actor's location")
    employment_status: EmploymentStatus = Field(
        default=EmploymentStatus.ACTIVE,
        description="Employment status"
    )
    job_level: Optional[JobLevel] = Field(default=None, description="Job level")

    def to_context_dict(self) -> dict[str, Any]:
        """Convert to dictionary for audit details."""
        return {
            "actor_id": self.id,
            "role_id": self.role_id,
            "clearance": self.clearance_level.value,
            "department": self.department,
            "location": self.location,
            "employment_status": self.employment_status.value,
            "job_level": self.job_level.value if self.job_level else None,
        }


class ActorAttributes(BaseModel):
    """Attribute bundle of an actor as stored by the attribute provider."""

    model_config = ConfigDict(frozen=True)

    department: Optional[str] = None
    location: Optional[str] = None
    employment_status: EmploymentStatus = EmploymentStatus.ACTIVE
    job_level: Optional[JobLevel] = None

    @classmethod
    def from_actor(cls, actor: Actor) -> "ActorAttributes":
        return cls(
            department=actor.department,
            location=actor.location,
            employment_status=actor.employment_status,
            job_level=actor.job_level,
        )
