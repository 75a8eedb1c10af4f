"""
Seed Data

Installs the standard roles, their permissions and the sample rules into a
store. Used by the CLI and by tests that want a realistic baseline.
"""

from accessgate.models.permissions import Role, RolePermission
from accessgate.models.rules import Rule, RuleCondition, RuleEffect

from .memory_store import InMemoryAccessStore

ROLES: dict[str, str] = {
    "ADMIN": "Full system access, can manage all users, roles, and resources",
    "HR_MANAGER": "HR operations, employee management, leave approvals",
    "FINANCE_MANAGER": "Financial data access, payroll management",
    "DEPARTMENT_MANAGER": "Department-specific resource management",
    "EMPLOYEE": "Basic access, own profile management",
}

ROLE_PERMISSIONS: dict[str, list[str]] = {
    "ADMIN": [
        "view_all", "edit_all", "delete_all", "manage_users", "manage_roles",
        "manage_rules", "view_confidential", "view_internal", "view_public",
        "approve_leave", "manage_backups", "view_logs", "export_logs",
    ],
    "HR_MANAGER": [
        "view_internal", "view_public", "manage_employees", "approve_leave",
        "view_hr_documents", "edit_hr_documents",
    ],
    "FINANCE_MANAGER": [
        "view_internal", "view_public", "view_confidential",
        "view_finance_documents", "edit_finance_documents", "approve_payroll",
    ],
    "DEPARTMENT_MANAGER": [
        "view_public", "view_internal", "view_department_resources",
        "edit_department_resources", "approve_department_leave",
    ],
    "EMPLOYEE": [
        "view_public", "view_own_profile", "edit_own_profile",
        "create_leave_request",
    ],
}


def role_id_for(name: str) -> str:
    """Stable role ID used by the seed data."""
    return f"role-{name.lower().replace('_', '-')}"


def sample_rules() -> list[Rule]:
    """The sample rules, in evaluation order."""
    return [
        Rule(
            name="AFTER_HOURS_ACCESS",
            description="Deny access outside working hours (8 AM - 6 PM)",
            condition=RuleCondition.from_mapping({"time": "afterHours"}),
            effect=RuleEffect.DENY,
            is_active=False,
        ),
        Rule(
            name="DEPARTMENT_RESOURCE_ACCESS",
            description="Users may access resources from their own department",
            condition=RuleCondition.from_mapping({"department": "match"}),
            effect=RuleEffect.ALLOW,
        ),
    ]


async def seed_store(store: InMemoryAccessStore, include_rules: bool = True) -> InMemoryAccessStore:
    """
    Populate a store with the standard roles, permissions and rules.

    Args:
        store: Store to populate
        include_rules: Whether to add the sample rules

    Returns:
        The same store, for chaining
    """
    for name, description in ROLES.items():
        role = await store.put_role(
            Role(id=role_id_for(name), name=name, description=description)
        )
        for permission in ROLE_PERMISSIONS[name]:
            await store.upsert_role_permission(
                RolePermission(role_id=role.id, permission_name=permission, allowed=True)
            )

    if include_rules:
        for rule in sample_rules():
            await store.add_rule(rule)

    return store
