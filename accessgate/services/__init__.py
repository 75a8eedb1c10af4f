"""
AccessGate Services Package

Owner and administrator workflows built on the engine.
"""

from .administration import PolicyAdministrationService
from .sharing import ResourceSharingService

__all__ = [
    "PolicyAdministrationService",
    "ResourceSharingService",
]
