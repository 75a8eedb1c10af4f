"""
AccessGate Settings Configuration

Centralized configuration using Pydantic Settings with environment variable support.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class DefaultEffect(str, Enum):
    """Outcome used when no rule matches."""
    ALLOW = "allow"
    DENY = "deny"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All variables are read with the ``ACCESSGATE_`` prefix, e.g.
    ``ACCESSGATE_SUPER_ROLE_NAME=ROOT``.
    """

    model_config = SettingsConfigDict(
        env_prefix="ACCESSGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Application Configuration
    # ==========================================================================

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json: bool = Field(
        default=False,
        description="Render log lines as JSON instead of console output"
    )

    # ==========================================================================
    # Access Control Configuration
    # ==========================================================================

    super_role_name: str = Field(
        default="ADMIN",
        description="Role name that bypasses every RBAC permission check"
    )

    working_hours_start: int = Field(
        default=8,
        ge=0,
        le=23,
        description="First hour (local time) of the working-hours window"
    )

    working_hours_end: int = Field(
        default=18,
        ge=1,
        le=24,
        description="Hour (local time) at which the working-hours window closes"
    )

    company_network_prefixes: list[str] = Field(
        default_factory=lambda: ["10.", "192.168."],
        description="Address prefixes treated as the company network"
    )

    company_network_hosts: list[str] = Field(
        default_factory=lambda: ["127.0.0.1"],
        description="Exact addresses treated as the company network"
    )

    rule_default_effect: DefaultEffect = Field(
        default=DefaultEffect.ALLOW,
        description="Effect applied by the rule evaluator when no active rule matches"
    )

    abac_skip_on_lookup_failure: bool = Field(
        default=True,
        description="Skip the attribute gate when attribute bundles cannot be fetched"
    )

    decision_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Upper bound for a single decision (None disables the bound)"
    )

    # ==========================================================================
    # Storage and Audit Configuration
    # ==========================================================================

    store_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file backing the in-memory access store"
    )

    audit_log_path: Optional[str] = Field(
        default=None,
        description="Optional JSONL file receiving audit entries"
    )

    audit_max_entries: int = Field(
        default=10000,
        gt=0,
        description="Maximum audit entries kept in memory"
    )

    # ==========================================================================
    # Validators
    # ==========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("super_role_name")
    @classmethod
    def validate_super_role_name(cls, v: str) -> str:
        """Super-role names are compared case-sensitively; reject blanks."""
        if not v.strip():
            raise ValueError("super_role_name must not be empty")
        return v.strip()

    @field_validator("working_hours_end")
    @classmethod
    def validate_working_hours(cls, v: int, info) -> int:
        """The working-hours window must not be empty."""
        start = info.data.get("working_hours_start")
        if start is not None and v <= start:
            raise ValueError("working_hours_end must be later than working_hours_start")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
