"""
Mandatory Access Control (MAC)

System-enforced clearance comparison that no other model can override.
"""

from typing import Optional

from config import get_settings
from accessgate.models.decisions import AccessDecision, AccessModel
from accessgate.models.resources import SecurityLevel


def parse_security_level(level: str) -> Optional[SecurityLevel]:
    """Parse a security level name case-insensitively; None if unknown."""
    try:
        return SecurityLevel(level.strip().upper())
    except (AttributeError, ValueError):
        return None


def can_modify_security_level(role_name: str) -> bool:
    """Only the super-role may change a resource's security level."""
    return role_name == get_settings().super_role_name


class ClearanceComparator:
    """
    MAC evaluator.

    Maps clearance and sensitivity onto the ordinal scale
    PUBLIC(1) < INTERNAL(2) < CONFIDENTIAL(3) and allows iff the actor's
    level is at least the resource's.
    """

    model = AccessModel.MAC

    def evaluate(
        self,
        actor_clearance: SecurityLevel,
        resource_sensitivity: SecurityLevel
    ) -> AccessDecision:
        if resource_sensitivity.can_access(actor_clearance):
            return AccessDecision.allow(
                self.model,
                f"User clearance level ({actor_clearance.value}) satisfies "
                f"resource security level ({resource_sensitivity.value})",
            )

        return AccessDecision.deny(
            self.model,
            f"User clearance level ({actor_clearance.value}) is insufficient "
            f"for resource security level ({resource_sensitivity.value})",
        )
