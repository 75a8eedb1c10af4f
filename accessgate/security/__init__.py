"""
AccessGate Security Package

The five access-control models (MAC, RuBAC, RBAC, ABAC, DAC), the unified
engine that sequences them, and audit logging.
"""

from .abac import ABACContext, AttributePolicyEvaluator
from .audit import AuditEntry, AuditLog, AuditLogger
from .dac import OwnershipGrantChecker
from .mac import ClearanceComparator
from .rbac import RolePermissionChecker
from .rubac import RuleEvaluator
from .unified import DEFAULT_GATE_ORDER, Gate, UnifiedAccessEngine

__all__ = [
    "ClearanceComparator",
    "RuleEvaluator",
    "RolePermissionChecker",
    "AttributePolicyEvaluator",
    "ABACContext",
    "OwnershipGrantChecker",
    "UnifiedAccessEngine",
    "Gate",
    "DEFAULT_GATE_ORDER",
    "AuditLogger",
    "AuditLog",
    "AuditEntry",
]
