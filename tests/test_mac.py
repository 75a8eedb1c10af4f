"""
Tests for Mandatory Access Control and environment checks
"""

from datetime import datetime

import pytest

from accessgate.models.decisions import AccessModel
from accessgate.models.resources import SecurityLevel
from accessgate.security.environment import is_company_network, is_working_hours
from accessgate.security.mac import (
    ClearanceComparator,
    can_modify_security_level,
    parse_security_level,
)


class TestClearanceComparator:
    """Tests for the clearance comparison."""

    @pytest.fixture
    def mac(self):
        return ClearanceComparator()

    @pytest.mark.parametrize("clearance", list(SecurityLevel))
    @pytest.mark.parametrize("sensitivity", list(SecurityLevel))
    def test_allows_iff_clearance_dominates(self, mac, clearance, sensitivity):
        """Test allow exactly when clearance >= sensitivity."""
        decision = mac.evaluate(clearance, sensitivity)

        assert decision.allowed is (clearance.level >= sensitivity.level)
        assert decision.model == AccessModel.MAC

    def test_denial_reason(self, mac):
        decision = mac.evaluate(SecurityLevel.INTERNAL, SecurityLevel.CONFIDENTIAL)

        assert decision.allowed is False
        assert decision.reason == (
            "User clearance level (INTERNAL) is insufficient "
            "for resource security level (CONFIDENTIAL)"
        )

    def test_allow_reason(self, mac):
        decision = mac.evaluate(SecurityLevel.CONFIDENTIAL, SecurityLevel.PUBLIC)
        assert "satisfies resource security level (PUBLIC)" in decision.reason


class TestSecurityLevelHelpers:
    """Tests for parsing and modification rights."""

    def test_parse_security_level(self):
        assert parse_security_level("confidential") == SecurityLevel.CONFIDENTIAL
        assert parse_security_level(" Public ") == SecurityLevel.PUBLIC

    def test_parse_unknown_level(self):
        assert parse_security_level("TOP_SECRET") is None
        assert parse_security_level(None) is None

    def test_only_super_role_modifies_levels(self):
        assert can_modify_security_level("ADMIN") is True
        assert can_modify_security_level("HR_MANAGER") is False


class TestEnvironmentChecks:
    """Tests for working hours and network origin."""

    def test_working_hours_window(self):
        """Test the window is [start, end)."""
        assert is_working_hours(datetime(2026, 3, 11, 8, 0), 8, 18) is True
        assert is_working_hours(datetime(2026, 3, 11, 17, 59), 8, 18) is True
        assert is_working_hours(datetime(2026, 3, 11, 18, 0), 8, 18) is False
        assert is_working_hours(datetime(2026, 3, 11, 7, 59), 8, 18) is False

    def test_custom_window(self):
        assert is_working_hours(datetime(2026, 3, 11, 20, 0), 19, 23) is True

    @pytest.mark.parametrize("address", ["10.1.2.3", "192.168.0.7", "127.0.0.1"])
    def test_company_addresses(self, address):
        assert is_company_network(address) is True

    @pytest.mark.parametrize("address", ["8.8.8.8", "172.16.0.1", "unknown", None, ""])
    def test_external_or_unknown_addresses(self, address):
        assert is_company_network(address) is False

    def test_custom_prefixes(self):
        assert is_company_network("172.16.0.1", prefixes=["172.16."], hosts=[]) is True
        assert is_company_network("127.0.0.1", prefixes=["172.16."], hosts=[]) is False
