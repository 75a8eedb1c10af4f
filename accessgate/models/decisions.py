"""
Decision Models

The verdict every evaluator and the unified engine return.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AccessModel(str, Enum):
    """The access-control model that produced a decision."""
    MAC = "MAC"
    DAC = "DAC"
    RBAC = "RBAC"
    RUBAC = "RuBAC"
    ABAC = "ABAC"
    UNIFIED = "UNIFIED"


class AccessDecision(BaseModel):
    """
    An allow/deny verdict with the deciding model and a human-readable reason.

    Decisions are produced fresh per request and never persisted by the
    engine. Every decision, and in particular every denial, carries a
    non-empty reason.
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    model: AccessModel
    reason: str = Field(..., min_length=1)

    @classmethod
    def allow(cls, model: AccessModel, reason: str) -> "AccessDecision":
        return cls(allowed=True, model=model, reason=reason)

    @classmethod
    def deny(cls, model: AccessModel, reason: str) -> "AccessDecision":
        return cls(allowed=False, model=model, reason=reason)
