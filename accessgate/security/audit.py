"""
Audit Logging

Audit trail for access decisions and access-control administration.
"""

import json
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog
from pydantic import BaseModel, Field

from accessgate.models.decisions import AccessDecision, AccessModel


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Decisions
    ACCESS_GRANTED = "access_granted"
    ACCESS_DENIED = "access_denied"
    DECISION_FAILED = "decision_failed"

    # DAC administration
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"
    SHARE_DENIED = "share_denied"
    REVOKE_DENIED = "revoke_denied"

    # RuBAC / RBAC administration
    RULE_CREATED = "rule_created"
    RULE_UPDATED = "rule_updated"
    ROLE_PERMISSION_ASSIGNED = "role_permission_assigned"
    ROLE_PERMISSION_REMOVED = "role_permission_removed"


class AuditSeverity(str, Enum):
    """Severity levels for audit entries."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEntry(BaseModel):
    """
    An audit log entry.

    One entry per decision or administrative change.
    """

    id: UUID = Field(default_factory=uuid4, description="Unique entry ID")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    # Action details
    action: AuditAction = Field(..., description="Type of action")
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Severity level"
    )
    success: bool = Field(default=True, description="Whether access was allowed / change applied")

    # Subject (who)
    actor_id: Optional[str] = Field(default=None, description="Acting actor ID")
    role_id: Optional[str] = Field(default=None, description="Actor's role")

    # Resource (what)
    resource_type: Optional[str] = Field(
        default=None,
        description="Type of resource (document, rule, role, ...)"
    )
    resource_id: Optional[str] = Field(default=None, description="Resource ID")
    requested_action: Optional[str] = Field(default=None, description="view/edit/share/delete")
    permission_name: Optional[str] = Field(default=None)

    # Context (where)
    ip_address: Optional[str] = Field(default=None)

    # Decision
    deciding_model: Optional[AccessModel] = Field(default=None)
    reason: Optional[str] = Field(default=None)

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event details"
    )
    error_message: Optional[str] = Field(
        default=None,
        description="Error message if the decision failed"
    )

    def to_log_dict(self) -> dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "audit_id": str(self.id),
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "success": self.success,
            "actor_id": self.actor_id,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "requested_action": self.requested_action,
            "deciding_model": self.deciding_model.value if self.deciding_model else None,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "details": self.details,
            "error": self.error_message,
        }


class AuditLog:
    """
    In-memory audit log with optional JSONL file persistence.

    Append-only; provides query helpers over recent entries.
    """

    def __init__(
        self,
        max_entries: int = 10000,
        storage_path: Optional[Path | str] = None
    ):
        """
        Initialize the audit log.

        Args:
            max_entries: Maximum entries to keep in memory
            storage_path: Optional JSONL file receiving every entry
        """
        self._entries: list[AuditEntry] = []
        self._max_entries = max_entries
        self._storage_path = Path(storage_path) if storage_path else None

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: AuditEntry) -> AuditEntry:
        """Add an entry to the log."""
        self._entries.append(entry)

        if len(self._entries) > self._max_entries:
            self._entries = self._entries[-self._max_entries:]

        if self._storage_path:
            self._append_to_file(entry)

        return entry

    def _append_to_file(self, entry: AuditEntry) -> None:
        """Append entry to log file."""
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._storage_path, "a") as f:
            f.write(json.dumps(entry.model_dump(mode="json"), default=str) + "\n")

    def query(
        self,
        action: Optional[AuditAction] = None,
        actor_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        deciding_model: Optional[AccessModel] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        success: Optional[bool] = None,
        limit: int = 100
    ) -> list[AuditEntry]:
        """
        Query audit entries with filters, most recent first.

        Args:
            action: Filter by action type
            actor_id: Filter by actor ID
            resource_id: Filter by resource ID
            deciding_model: Filter by deciding model
            start_time: Filter by start time
            end_time: Filter by end time
            success: Filter by success status
            limit: Maximum entries to return

        Returns:
            List of matching audit entries
        """
        results = []

        for entry in reversed(self._entries):
            if len(results) >= limit:
                break

            if action and entry.action != action:
                continue
            if actor_id and entry.actor_id != actor_id:
                continue
            if resource_id and entry.resource_id != resource_id:
                continue
            if deciding_model and entry.deciding_model != deciding_model:
                continue
            if start_time and entry.timestamp < start_time:
                continue
            if end_time and entry.timestamp > end_time:
                continue
            if success is not None and entry.success != success:
                continue

            results.append(entry)

        return results

    def get_actor_activity(self, actor_id: str, limit: int = 50) -> list[AuditEntry]:
        """Get recent activity for an actor."""
        return self.query(actor_id=actor_id, limit=limit)

    def get_denied_decisions(
        self,
        actor_id: Optional[str] = None,
        limit: int = 50
    ) -> list[AuditEntry]:
        """Get denied access decisions."""
        return self.query(action=AuditAction.ACCESS_DENIED, actor_id=actor_id, limit=limit)


class AuditLogger:
    """
    High-level audit logging interface.

    Provides convenient methods for recording decisions and administrative
    changes.
    """

    def __init__(
        self,
        audit_log: Optional[AuditLog] = None,
        enable_console: bool = True
    ):
        """
        Initialize the audit logger.

        Args:
            audit_log: Optional AuditLog instance for storage
            enable_console: Whether to also emit entries through structlog
        """
        self.audit_log = audit_log or AuditLog()
        self.enable_console = enable_console

        if enable_console:
            self._logger = structlog.get_logger("accessgate.audit")

    def _log_entry(self, entry: AuditEntry) -> AuditEntry:
        """Log an entry to all configured destinations."""
        self.audit_log.add(entry)

        if self.enable_console:
            log_method = getattr(self._logger, entry.severity.value, self._logger.info)
            log_method(entry.action.value, **entry.to_log_dict())

        return entry

    def log_decision(
        self,
        actor_id: str,
        role_id: Optional[str],
        decision: AccessDecision,
        resource_id: Optional[str] = None,
        requested_action: Optional[str] = None,
        permission_name: Optional[str] = None,
        ip_address: Optional[str] = None,
        **kwargs
    ) -> AuditEntry:
        """Log the outcome of an access decision."""
        entry = AuditEntry(
            action=AuditAction.ACCESS_GRANTED if decision.allowed else AuditAction.ACCESS_DENIED,
            severity=AuditSeverity.INFO if decision.allowed else AuditSeverity.WARNING,
            success=decision.allowed,
            actor_id=actor_id,
            role_id=role_id,
            resource_type="document" if resource_id else None,
            resource_id=resource_id,
            requested_action=requested_action,
            permission_name=permission_name,
            ip_address=ip_address,
            deciding_model=decision.model,
            reason=decision.reason,
            details=kwargs,
        )
        return self._log_entry(entry)

    def log_decision_error(
        self,
        actor_id: str,
        error: BaseException,
        resource_id: Optional[str] = None,
        requested_action: Optional[str] = None,
        **kwargs
    ) -> AuditEntry:
        """Log a decision that failed with an engine error (not a denial)."""
        entry = AuditEntry(
            action=AuditAction.DECISION_FAILED,
            severity=AuditSeverity.ERROR,
            success=False,
            actor_id=actor_id,
            resource_type="document" if resource_id else None,
            resource_id=resource_id,
            requested_action=requested_action,
            error_message=f"{type(error).__name__}: {error}",
            details=kwargs,
        )
        return self._log_entry(entry)

    def log_grant_change(
        self,
        actor_id: str,
        resource_id: str,
        grantee_id: str,
        action: str,  # granted, revoked, share_denied, revoke_denied
        reason: Optional[str] = None,
        **kwargs
    ) -> AuditEntry:
        """Log a DAC share/revoke attempt."""
        action_map = {
            "granted": AuditAction.PERMISSION_GRANTED,
            "revoked": AuditAction.PERMISSION_REVOKED,
            "share_denied": AuditAction.SHARE_DENIED,
            "revoke_denied": AuditAction.REVOKE_DENIED,
        }
        audit_action = action_map[action]
        denied = audit_action in (AuditAction.SHARE_DENIED, AuditAction.REVOKE_DENIED)

        entry = AuditEntry(
            action=audit_action,
            severity=AuditSeverity.WARNING,  # Grant changes are security-relevant
            success=not denied,
            actor_id=actor_id,
            resource_type="document",
            resource_id=resource_id,
            deciding_model=AccessModel.DAC,
            reason=reason,
            details={"grantee_id": grantee_id, **kwargs},
        )
        return self._log_entry(entry)

    def log_rule_change(
        self,
        actor_id: str,
        action: str,  # created, updated
        rule_id: str,
        rule_name: str,
        **kwargs
    ) -> AuditEntry:
        """Log a rule change event."""
        action_map = {
            "created": AuditAction.RULE_CREATED,
            "updated": AuditAction.RULE_UPDATED,
        }

        entry = AuditEntry(
            action=action_map.get(action, AuditAction.RULE_UPDATED),
            severity=AuditSeverity.WARNING,
            success=True,
            actor_id=actor_id,
            resource_type="rule",
            resource_id=rule_id,
            details={"rule_name": rule_name, **kwargs},
        )
        return self._log_entry(entry)

    def log_role_permission_change(
        self,
        actor_id: str,
        role_id: str,
        permission_name: str,
        assigned: bool,
        **kwargs
    ) -> AuditEntry:
        """Log an RBAC permission assignment or removal."""
        entry = AuditEntry(
            action=(
                AuditAction.ROLE_PERMISSION_ASSIGNED
                if assigned
                else AuditAction.ROLE_PERMISSION_REMOVED
            ),
            severity=AuditSeverity.WARNING,
            success=True,
            actor_id=actor_id,
            role_id=role_id,
            resource_type="role",
            resource_id=role_id,
            permission_name=permission_name,
            details=kwargs,
        )
        return self._log_entry(entry)
