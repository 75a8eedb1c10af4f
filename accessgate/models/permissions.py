"""
Permission Models

Roles, role permissions (RBAC) and explicit per-actor grants (DAC).
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PERMISSION_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.:-]*$")


def validate_permission_name(name: str) -> str:
    """Return ``name`` if it is a well-formed permission name, else raise ValueError."""
    if not isinstance(name, str) or not PERMISSION_NAME_PATTERN.match(name):
        raise ValueError(f"Malformed permission name: {name!r}")
    return name


class Role(BaseModel):
    """A role that actors are assigned to."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Role ID")
    name: str = Field(..., min_length=1, description="Role name, e.g. 'HR_MANAGER'")
    description: Optional[str] = Field(default=None)


class RolePermission(BaseModel):
    """
    A (role, permission) row.

    At most one row exists per pair; ``allowed=False`` rows deny explicitly.
    """

    model_config = ConfigDict(frozen=True)

    role_id: str = Field(..., min_length=1)
    permission_name: str = Field(..., description="Permission name, e.g. 'view_internal'")
    allowed: bool = Field(default=True)

    @field_validator("permission_name")
    @classmethod
    def check_permission_name(cls, v: str) -> str:
        return validate_permission_name(v)


class GrantPermissions(BaseModel):
    """The capability bits carried by a grant."""

    model_config = ConfigDict(frozen=True)

    can_view: bool = False
    can_edit: bool = False
    can_share: bool = False


class Grant(BaseModel):
    """
    An explicit DAC grant for one (resource, grantee) pair.

    Written only through owner-initiated share/revoke operations. There is no
    delete bit: deleting requires ``can_edit``.
    """

    model_config = ConfigDict(frozen=True)

    resource_id: str = Field(..., min_length=1)
    grantee_id: str = Field(..., min_length=1)
    can_view: bool = False
    can_edit: bool = False
    can_share: bool = False
    granted_by: str = Field(..., min_length=1, description="Actor who issued the grant")
    granted_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def permissions(self) -> GrantPermissions:
        return GrantPermissions(
            can_view=self.can_view,
            can_edit=self.can_edit,
            can_share=self.can_share,
        )

    @property
    def key(self) -> tuple[str, str]:
        return (self.resource_id, self.grantee_id)
