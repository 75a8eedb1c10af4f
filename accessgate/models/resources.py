"""
Resource Models

Defines protected resources, their security levels, and the actions that can
be performed on them.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SecurityLevel(str, Enum):
    """
    Security levels shared by actor clearance and resource sensitivity.

    Levels are strictly ordinal: an actor may access a resource when the
    actor's level is greater than or equal to the resource's level.
    """
    PUBLIC = "PUBLIC"                  # Anyone who passes the other gates
    INTERNAL = "INTERNAL"              # Employees
    CONFIDENTIAL = "CONFIDENTIAL"      # Cleared personnel only

    @property
    def level(self) -> int:
        """Return numeric level for comparison."""
        levels = {
            "PUBLIC": 1,
            "INTERNAL": 2,
            "CONFIDENTIAL": 3,
        }
        return levels[self.value]

    def can_access(self, clearance: "SecurityLevel") -> bool:
        """Check if an actor with given clearance can access this level."""
        return clearance.level >= self.level


class ResourceAction(str, Enum):
    """Actions an actor may request on a resource."""
    VIEW = "view"
    EDIT = "edit"
    SHARE = "share"
    DELETE = "delete"


class Resource(BaseModel):
    """
    A protected resource.

    Created and updated by resource-management collaborators; the engine only
    reads it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Resource ID")
    owner_id: str = Field(..., min_length=1, description="ID of the owning actor")
    security_level: SecurityLevel = Field(
        default=SecurityLevel.INTERNAL,
        description="Sensitivity of the resource"
    )
    department: Optional[str] = Field(
        default=None,
        description="Owning department"
    )
    title: Optional[str] = Field(default=None, description="Display title")

    @property
    def is_public(self) -> bool:
        return self.security_level == SecurityLevel.PUBLIC


class ResourceAttributes(BaseModel):
    """Attribute bundle of a resource used by ABAC."""

    model_config = ConfigDict(frozen=True)

    department: Optional[str] = None
    security_level: SecurityLevel
