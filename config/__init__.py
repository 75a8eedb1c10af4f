"""
AccessGate Configuration Module

Provides centralized configuration management using Pydantic Settings.
"""

from .logging import configure_logging
from .settings import DefaultEffect, Environment, Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "DefaultEffect",
    "Environment",
]
