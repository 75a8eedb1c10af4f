"""
Test Configuration and Fixtures

Shared fixtures for AccessGate tests.
"""

import asyncio
import os
from collections import Counter
from datetime import datetime

import pytest

# Set test environment
os.environ["ACCESSGATE_ENVIRONMENT"] = "test"
os.environ["ACCESSGATE_LOG_LEVEL"] = "WARNING"

# A Wednesday, inside working hours
WORK_TIME = datetime(2026, 3, 11, 10, 30)
# Same day, after hours
NIGHT_TIME = datetime(2026, 3, 11, 22, 15)


def run(coro):
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def settings():
    """Settings isolated from any .env file."""
    from config import Settings

    return Settings(_env_file=None)


@pytest.fixture
def counting_store():
    """In-memory store that counts calls to each lookup."""
    from accessgate.storage import InMemoryAccessStore

    class CountingStore(InMemoryAccessStore):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.calls = Counter()

        async def find_resource(self, resource_id):
            self.calls["find_resource"] += 1
            return await super().find_resource(resource_id)

        async def find_role(self, role_id):
            self.calls["find_role"] += 1
            return await super().find_role(role_id)

        async def find_role_permission(self, role_id, permission_name):
            self.calls["find_role_permission"] += 1
            return await super().find_role_permission(role_id, permission_name)

        async def find_grant(self, resource_id, grantee_id):
            self.calls["find_grant"] += 1
            return await super().find_grant(resource_id, grantee_id)

        async def list_active_rules(self):
            self.calls["list_active_rules"] += 1
            return await super().list_active_rules()

        async def get_actor_attributes(self, actor_id):
            self.calls["get_actor_attributes"] += 1
            return await super().get_actor_attributes(actor_id)

        async def get_resource_attributes(self, resource_id):
            self.calls["get_resource_attributes"] += 1
            return await super().get_resource_attributes(resource_id)

    return CountingStore()


@pytest.fixture
def store(counting_store):
    """Store seeded with the standard roles and permissions (no rules)."""
    from accessgate.storage import seed_store

    run(seed_store(counting_store, include_rules=False))
    counting_store.calls.clear()
    return counting_store


@pytest.fixture
def it_actor():
    """An INTERNAL-cleared IT employee."""
    from accessgate.models.actors import Actor, JobLevel
    from accessgate.models.resources import SecurityLevel
    from accessgate.storage.seed import role_id_for

    return Actor(
        id="user-it",
        role_id=role_id_for("EMPLOYEE"),
        clearance_level=SecurityLevel.INTERNAL,
        department="IT",
        job_level=JobLevel.STAFF,
    )


@pytest.fixture
def admin_actor():
    """A CONFIDENTIAL-cleared administrator."""
    from accessgate.models.actors import Actor
    from accessgate.models.resources import SecurityLevel
    from accessgate.storage.seed import role_id_for

    return Actor(
        id="user-admin",
        role_id=role_id_for("ADMIN"),
        clearance_level=SecurityLevel.CONFIDENTIAL,
        department="IT",
    )


@pytest.fixture
def populated_store(store, it_actor, admin_actor):
    """Seeded store with actors and a few resources owned by someone else."""
    from accessgate.models.actors import ActorAttributes
    from accessgate.models.resources import Resource, SecurityLevel

    async def populate():
        for actor in (it_actor, admin_actor):
            await store.put_actor(actor.id, ActorAttributes.from_actor(actor))
        await store.put_actor("owner", ActorAttributes(department="IT"))
        await store.put_actor("user-hr", ActorAttributes(department="HR"))

        await store.put_resource(Resource(
            id="doc-it-internal", owner_id="owner",
            security_level=SecurityLevel.INTERNAL, department="IT",
        ))
        await store.put_resource(Resource(
            id="doc-hr-internal", owner_id="owner",
            security_level=SecurityLevel.INTERNAL, department="HR",
        ))
        await store.put_resource(Resource(
            id="doc-hr-confidential", owner_id="owner",
            security_level=SecurityLevel.CONFIDENTIAL, department="HR",
        ))
        await store.put_resource(Resource(
            id="doc-public", owner_id="owner",
            security_level=SecurityLevel.PUBLIC, department="Marketing",
        ))

    run(populate())
    store.calls.clear()
    return store


@pytest.fixture
def engine(populated_store, settings):
    """Unified engine over the populated store, with an in-memory audit log."""
    from accessgate.security import AuditLog, AuditLogger, UnifiedAccessEngine

    return UnifiedAccessEngine.from_store(
        populated_store,
        audit=AuditLogger(AuditLog(), enable_console=False),
        settings=settings,
        clock=lambda: WORK_TIME,
    )
