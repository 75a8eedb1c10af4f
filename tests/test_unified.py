"""
Tests for the Unified Access Engine

Gate ordering, short-circuiting, the PUBLIC override, resource-less checks
and failure handling.
"""

import asyncio

import pytest

from conftest import NIGHT_TIME, WORK_TIME
from config import DefaultEffect, Settings
from accessgate.exceptions import (
    DecisionTimeoutError,
    InvalidInputError,
    NotFoundError,
    StoreUnavailableError,
)
from accessgate.models.actors import Actor
from accessgate.models.decisions import AccessModel
from accessgate.models.permissions import GrantPermissions
from accessgate.models.resources import Resource, ResourceAction, SecurityLevel
from accessgate.models.rules import RuleEffect
from accessgate.security import AuditLog, AuditLogger, UnifiedAccessEngine
from accessgate.security.audit import AuditAction
from accessgate.security.unified import DEFAULT_GATE_ORDER
from accessgate.storage import InMemoryAccessStore
from accessgate.storage.seed import role_id_for


def decide(engine, *args, **kwargs):
    return asyncio.run(engine.decide(*args, **kwargs))


def grant(engine, resource_id, grantee_id, **bits):
    asyncio.run(
        engine.dac.grant(resource_id, grantee_id, GrantPermissions(**bits), granted_by="owner")
    )


class TestGateOrder:
    """Tests for the configured gate sequence."""

    def test_default_order(self, engine):
        assert engine.gate_order == [
            AccessModel.MAC,
            AccessModel.RUBAC,
            AccessModel.RBAC,
            AccessModel.ABAC,
            AccessModel.DAC,
        ]
        assert engine.gate_order == list(DEFAULT_GATE_ORDER)

    def test_custom_gate_sequence(self, populated_store, settings, it_actor):
        """Test the gate list is data: dropping ABAC lets DAC decide."""
        base = UnifiedAccessEngine.from_store(populated_store, settings=settings)
        gates = [g for g in base.gates if g.model != AccessModel.ABAC]
        engine = UnifiedAccessEngine.from_store(populated_store, settings=settings, gates=gates)

        decision = decide(engine, it_actor, "doc-hr-internal")

        assert engine.gate_order == [
            AccessModel.MAC, AccessModel.RUBAC, AccessModel.RBAC, AccessModel.DAC,
        ]
        assert decision.model == AccessModel.DAC


class TestEndToEnd:
    """Tests for full decisions over targeted resources."""

    def test_same_department_without_grant(self, engine, it_actor):
        """Test MAC, RuBAC and ABAC pass, then DAC denies."""
        decision = decide(engine, it_actor, "doc-it-internal", ResourceAction.VIEW)

        assert decision.allowed is False
        assert decision.model == AccessModel.DAC
        assert decision.reason == "No explicit permission granted for this resource"

    def test_department_mismatch_denied_by_abac(self, engine, it_actor, populated_store):
        """Test ABAC denies first and DAC is never evaluated."""
        grant(engine, "doc-hr-internal", it_actor.id, can_view=True)
        populated_store.calls.clear()

        decision = decide(engine, it_actor, "doc-hr-internal", ResourceAction.VIEW)

        assert decision.allowed is False
        assert decision.model == AccessModel.ABAC
        assert decision.reason == "Policy conditions not met"
        assert populated_store.calls["find_grant"] == 0

    def test_same_department_with_grant(self, engine, it_actor):
        grant(engine, "doc-it-internal", it_actor.id, can_view=True)

        decision = decide(engine, it_actor, "doc-it-internal", "view")

        assert decision.allowed is True
        assert decision.model == AccessModel.DAC
        assert decision.reason == "User has view permission"

    def test_owner_allowed(self, engine):
        owner = Actor(
            id="owner",
            role_id=role_id_for("EMPLOYEE"),
            clearance_level=SecurityLevel.INTERNAL,
            department="IT",
        )

        decision = decide(engine, owner, "doc-it-internal", ResourceAction.DELETE)

        assert decision.allowed is True
        assert decision.reason == "User is the resource owner"

    def test_grant_for_other_action(self, engine, it_actor):
        grant(engine, "doc-it-internal", it_actor.id, can_view=True)

        decision = decide(engine, it_actor, "doc-it-internal", ResourceAction.DELETE)

        assert decision.allowed is False
        assert decision.model == AccessModel.DAC

    def test_decisions_are_deterministic(self, engine, it_actor):
        first = decide(engine, it_actor, "doc-hr-internal")
        second = decide(engine, it_actor, "doc-hr-internal")

        assert first == second

    def test_can_access(self, engine, it_actor):
        grant(engine, "doc-it-internal", it_actor.id, can_view=True)

        assert asyncio.run(engine.can_access(it_actor, "doc-it-internal")) is True
        assert asyncio.run(engine.can_access(it_actor, "doc-it-internal", "edit")) is False

    def test_filter_accessible(self, engine, it_actor):
        grant(engine, "doc-it-internal", it_actor.id, can_view=True)

        accessible = asyncio.run(engine.filter_accessible(
            it_actor,
            ["doc-hr-confidential", "doc-it-internal", "doc-hr-internal", "doc-public"],
        ))

        assert accessible == ["doc-it-internal", "doc-public"]


class TestMandatoryAccessGate:
    """Tests for MAC short-circuiting."""

    def test_insufficient_clearance(self, engine, it_actor):
        decision = decide(engine, it_actor, "doc-hr-confidential")

        assert decision.allowed is False
        assert decision.model == AccessModel.MAC
        assert "is insufficient" in decision.reason

    def test_mac_denial_stops_evaluation(self, engine, it_actor, populated_store):
        """Test no later evaluator touches its store once MAC denies."""
        decide(engine, it_actor, "doc-hr-confidential", permission_name="view_public")

        assert populated_store.calls["find_resource"] == 1
        assert populated_store.calls["list_active_rules"] == 0
        assert populated_store.calls["find_role"] == 0
        assert populated_store.calls["get_actor_attributes"] == 0
        assert populated_store.calls["find_grant"] == 0

    def test_mac_denial_not_overridden_by_ownership(self, engine):
        """Test owning a resource does not beat clearance."""
        owner = Actor(id="owner", role_id=role_id_for("EMPLOYEE"), department="IT")

        decision = decide(engine, owner, "doc-it-internal")

        assert decision.allowed is False
        assert decision.model == AccessModel.MAC

    def test_mac_denial_not_overridden_by_super_role(self, engine):
        admin = Actor(id="user-admin", role_id=role_id_for("ADMIN"), department="HR")

        decision = decide(engine, admin, "doc-hr-confidential", permission_name="view_all")

        assert decision.allowed is False
        assert decision.model == AccessModel.MAC


class TestPublicResources:
    """Tests for the PUBLIC bypass and override."""

    def test_public_view_without_grant_or_department(self, engine, it_actor):
        """Test a PUBLIC resource is viewable despite ABAC and DAC denials."""
        decision = decide(engine, it_actor, "doc-public", ResourceAction.VIEW)

        assert decision.allowed is True
        assert decision.model == AccessModel.MAC
        assert decision.reason == "Public resource"

    def test_public_override_only_for_view(self, engine, it_actor):
        decision = decide(engine, it_actor, "doc-public", ResourceAction.EDIT)

        assert decision.allowed is False
        assert decision.model == AccessModel.DAC

    def test_public_view_still_subject_to_rules(self, engine, it_actor):
        asyncio.run(engine.rubac.create_rule("IT_LOCKOUT", {"department": "IT"}, RuleEffect.DENY))

        decision = decide(engine, it_actor, "doc-public")

        assert decision.allowed is False
        assert decision.model == AccessModel.RUBAC
        assert decision.reason == "Access denied by rule: IT_LOCKOUT"

    def test_confidential_mismatch_denied_at_abac(self, engine, admin_actor, populated_store):
        """Test a CONFIDENTIAL resource gets no bypass."""
        decision = decide(engine, admin_actor, "doc-hr-confidential")

        assert decision.allowed is False
        assert decision.model == AccessModel.ABAC
        assert populated_store.calls["find_grant"] == 0


class TestRuleGate:
    """Tests for RuBAC inside the engine."""

    @pytest.fixture
    def night_engine(self, populated_store, settings):
        return UnifiedAccessEngine.from_store(
            populated_store, settings=settings, clock=lambda: NIGHT_TIME
        )

    def test_after_hours_rule(self, night_engine, it_actor, populated_store):
        asyncio.run(night_engine.rubac.create_rule(
            "AFTER_HOURS_ACCESS", {"time": "afterHours"}, RuleEffect.DENY
        ))
        populated_store.calls.clear()

        decision = decide(night_engine, it_actor, "doc-it-internal", permission_name="view_public")

        assert decision.allowed is False
        assert decision.model == AccessModel.RUBAC
        assert decision.reason == "Access denied by rule: AFTER_HOURS_ACCESS"
        assert populated_store.calls["find_role"] == 0
        assert populated_store.calls["get_actor_attributes"] == 0

    def test_rule_allow_does_not_skip_later_gates(self, engine, it_actor):
        """Test a matching ALLOW rule is not final."""
        asyncio.run(engine.rubac.create_rule(
            "DEPARTMENT_RESOURCE_ACCESS", {"department": "match"}, RuleEffect.ALLOW
        ))

        decision = decide(engine, it_actor, "doc-it-internal")

        assert decision.allowed is False
        assert decision.model == AccessModel.DAC

    def test_network_origin_forwarded(self, engine, it_actor):
        asyncio.run(engine.rubac.create_rule(
            "BLOCKED_HOST", {"ipAddress": "203.0.113.9"}, RuleEffect.DENY
        ))

        blocked = decide(engine, it_actor, "doc-public", network_origin="203.0.113.9")
        other = decide(engine, it_actor, "doc-public", network_origin="10.0.0.2")

        assert blocked.allowed is False
        assert other.allowed is True

    def test_environment_forwarded(self, engine, it_actor):
        asyncio.run(engine.rubac.create_rule("NO_API", {"channel": "api"}, RuleEffect.DENY))

        assert decide(engine, it_actor, "doc-public", environment={"channel": "api"}).allowed is False
        assert decide(engine, it_actor, "doc-public", environment={"channel": "web"}).allowed is True

    def test_default_deny_setting(self, populated_store, it_actor):
        settings = Settings(_env_file=None, rule_default_effect=DefaultEffect.DENY)
        engine = UnifiedAccessEngine.from_store(
            populated_store, settings=settings, clock=lambda: WORK_TIME
        )

        decision = decide(engine, it_actor, "doc-public")

        assert decision.allowed is False
        assert decision.model == AccessModel.RUBAC
        assert decision.reason == "No matching rules (default deny)"


class TestRolePermissionGate:
    """Tests for opt-in RBAC and resource-less checks."""

    def test_rbac_skipped_without_permission(self, engine, it_actor, populated_store):
        decide(engine, it_actor, "doc-it-internal")
        assert populated_store.calls["find_role"] == 0

    def test_rbac_denial_with_resource(self, engine, it_actor):
        decision = decide(engine, it_actor, "doc-it-internal", permission_name="approve_leave")

        assert decision.allowed is False
        assert decision.model == AccessModel.RBAC
        assert decision.reason == "Role does not have approve_leave permission"

    def test_rbac_allow_with_resource_continues(self, engine, it_actor):
        decision = decide(engine, it_actor, "doc-it-internal", permission_name="view_public")

        assert decision.allowed is False
        assert decision.model == AccessModel.DAC

    def test_permission_only_allowed(self, engine, admin_actor):
        decision = decide(engine, admin_actor, permission_name="manage_rules")

        assert decision.allowed is True
        assert decision.model == AccessModel.RBAC
        assert decision.reason == "ADMIN role has all permissions"

    def test_permission_only_denied(self, engine, it_actor):
        decision = decide(engine, it_actor, permission_name="manage_rules")

        assert decision.allowed is False
        assert decision.model == AccessModel.RBAC

    def test_no_resource_no_permission(self, engine, it_actor):
        decision = decide(engine, it_actor)

        assert decision.allowed is False
        assert decision.model == AccessModel.UNIFIED
        assert decision.reason == "No access control checks passed"

    def test_missing_resource(self, engine, it_actor, populated_store):
        decision = decide(engine, it_actor, "doc-ghost")

        assert decision.allowed is False
        assert decision.model == AccessModel.UNIFIED
        assert decision.reason == "Resource not found"
        assert populated_store.calls["list_active_rules"] == 0


class TestInvalidInput:
    """Tests for input validation before any gate runs."""

    def test_unknown_action(self, engine, it_actor, populated_store):
        with pytest.raises(InvalidInputError):
            decide(engine, it_actor, "doc-it-internal", "publish")
        assert populated_store.calls["find_resource"] == 0

    def test_malformed_permission(self, engine, it_actor):
        with pytest.raises(InvalidInputError):
            decide(engine, it_actor, "doc-it-internal", permission_name="view all")

    def test_blank_resource_id(self, engine, it_actor):
        with pytest.raises(InvalidInputError):
            decide(engine, it_actor, "   ")

    def test_invalid_input_is_value_error(self, engine, it_actor):
        with pytest.raises(ValueError):
            decide(engine, it_actor, "doc-it-internal", "publish")


class SlowStore(InMemoryAccessStore):
    """Store whose resource lookup never finishes in time."""

    async def find_resource(self, resource_id):
        await asyncio.sleep(5)
        return await super().find_resource(resource_id)


class BrokenRuleStore(InMemoryAccessStore):
    """Store whose rule table is unreachable."""

    async def list_active_rules(self):
        raise StoreUnavailableError("rule table unreachable")


class BrokenAttributeStore(InMemoryAccessStore):
    """Store whose attribute provider is unreachable."""

    async def get_actor_attributes(self, actor_id):
        raise StoreUnavailableError("directory unreachable")


class FailingAuditLogger(AuditLogger):
    """Audit sink that always fails."""

    def log_decision(self, *args, **kwargs):
        raise RuntimeError("audit sink down")


class TestFailures:
    """Tests that engine failures are errors, never denials."""

    def test_timeout(self, settings, it_actor):
        audit = AuditLogger(AuditLog(), enable_console=False)
        engine = UnifiedAccessEngine.from_store(SlowStore(), settings=settings, audit=audit)

        with pytest.raises(DecisionTimeoutError):
            decide(engine, it_actor, "doc-it-internal", timeout=0.01)

        entries = audit.audit_log.query(action=AuditAction.DECISION_FAILED)
        assert len(entries) == 1
        assert "DecisionTimeoutError" in entries[0].error_message

    def test_timeout_from_settings(self, it_actor):
        settings = Settings(_env_file=None, decision_timeout_seconds=0.01)
        engine = UnifiedAccessEngine.from_store(SlowStore(), settings=settings)

        with pytest.raises(DecisionTimeoutError):
            decide(engine, it_actor, "doc-it-internal")

    def test_cancellation_propagates(self, settings, it_actor):
        engine = UnifiedAccessEngine.from_store(SlowStore(), settings=settings)

        async def scenario():
            task = asyncio.create_task(engine.decide(it_actor, "doc-it-internal"))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return task.cancelled()

        assert asyncio.run(scenario()) is True

    def test_store_error_propagates(self, settings, it_actor):
        engine = UnifiedAccessEngine.from_store(BrokenRuleStore(), settings=settings)

        with pytest.raises(StoreUnavailableError):
            decide(engine, it_actor)

    def test_abac_lookup_failure_skipped(self, engine, it_actor, populated_store):
        """Test an actor missing from the directory falls through to DAC."""
        newcomer = it_actor.model_copy(update={"id": "user-new"})

        decision = decide(engine, newcomer, "doc-it-internal")

        assert decision.allowed is False
        assert decision.model == AccessModel.DAC
        assert populated_store.calls["find_grant"] == 1

    def test_abac_unavailable_skipped(self, settings, it_actor):
        store = BrokenAttributeStore()
        asyncio.run(store.put_resource(Resource(
            id="doc-1", owner_id="owner", department="HR", security_level=SecurityLevel.INTERNAL
        )))
        engine = UnifiedAccessEngine.from_store(store, settings=settings)

        decision = decide(engine, it_actor, "doc-1")

        assert decision.model == AccessModel.DAC

    def test_abac_lookup_failure_raises_when_not_skipped(self, populated_store, it_actor):
        settings = Settings(_env_file=None, abac_skip_on_lookup_failure=False)
        engine = UnifiedAccessEngine.from_store(
            populated_store, settings=settings, clock=lambda: WORK_TIME
        )
        newcomer = it_actor.model_copy(update={"id": "user-new"})

        with pytest.raises(NotFoundError):
            decide(engine, newcomer, "doc-it-internal")

    def test_audit_failure_does_not_change_decision(self, populated_store, settings, it_actor):
        engine = UnifiedAccessEngine.from_store(
            populated_store,
            settings=settings,
            audit=FailingAuditLogger(enable_console=False),
            clock=lambda: WORK_TIME,
        )

        decision = decide(engine, it_actor, "doc-public")

        assert decision.allowed is True


class TestDecisionAudit:
    """Tests that decisions reach the audit log."""

    def test_decision_recorded(self, engine, it_actor):
        decide(engine, it_actor, "doc-hr-internal", network_origin="10.0.0.3")

        entries = engine.audit.audit_log.get_actor_activity(it_actor.id)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == AuditAction.ACCESS_DENIED
        assert entry.deciding_model == AccessModel.ABAC
        assert entry.reason == "Policy conditions not met"
        assert entry.requested_action == "view"
        assert entry.ip_address == "10.0.0.3"

    def test_allowed_decision_recorded(self, engine, admin_actor):
        decide(engine, admin_actor, permission_name="manage_roles")

        entries = engine.audit.audit_log.query(action=AuditAction.ACCESS_GRANTED)

        assert len(entries) == 1
        assert entries[0].permission_name == "manage_roles"
        assert entries[0].role_id == admin_actor.role_id
