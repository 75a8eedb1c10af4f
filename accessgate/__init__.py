"""
AccessGate

Unified access-control decision engine composing MAC, RuBAC, RBAC, ABAC and
DAC.
"""

from .exceptions import (
    AccessControlError,
    DecisionTimeoutError,
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
)
from .models import AccessDecision, AccessModel, Actor, Resource, ResourceAction, SecurityLevel
from .security import UnifiedAccessEngine

__version__ = "0.1.0"

__all__ = [
    "UnifiedAccessEngine",
    "AccessDecision",
    "AccessModel",
    "Actor",
    "Resource",
    "ResourceAction",
    "SecurityLevel",
    "AccessControlError",
    "DecisionTimeoutError",
    "InvalidInputError",
    "NotFoundError",
    "StoreUnavailableError",
]
