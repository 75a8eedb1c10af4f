"""
AccessGate Storage Package

Repository interfaces and the in-memory implementation.
"""

from .base import (
    AttributeProvider,
    GrantStore,
    ResourceStore,
    RolePermissionStore,
    RuleStore,
)
from .memory_store import InMemoryAccessStore
from .seed import seed_store

__all__ = [
    "AttributeProvider",
    "GrantStore",
    "ResourceStore",
    "RolePermissionStore",
    "RuleStore",
    "InMemoryAccessStore",
    "seed_store",
]
