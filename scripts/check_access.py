#!/usr/bin/env python3
"""
Access Check CLI

Runs a single unified access decision against a seeded (or file-backed)
store and prints the verdict.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import configure_logging, get_settings
from accessgate.exceptions import AccessControlError
from accessgate.models.actors import Actor, ActorAttributes, EmploymentStatus, JobLevel
from accessgate.models.resources import Resource, ResourceAction, SecurityLevel
from accessgate.security import AuditLog, AuditLogger, UnifiedAccessEngine
from accessgate.storage import InMemoryAccessStore, seed_store
from accessgate.storage.seed import ROLES, role_id_for


async def build_engine(store_path: str | None) -> tuple[UnifiedAccessEngine, InMemoryAccessStore]:
    """Create a store (seeded unless loaded from file) and an engine over it."""
    settings = get_settings()
    store = InMemoryAccessStore(storage_path=store_path or settings.store_path)

    if not await store.list_rules():
        await seed_store(store)

    audit = AuditLogger(
        AuditLog(max_entries=settings.audit_max_entries, storage_path=settings.audit_log_path),
        enable_console=False,
    )
    return UnifiedAccessEngine.from_store(store, audit=audit, settings=settings), store


async def run(args: argparse.Namespace) -> int:
    engine, store = await build_engine(args.store)

    actor = Actor(
        id=args.actor,
        role_id=role_id_for(args.role),
        clearance_level=SecurityLevel(args.clearance),
        department=args.department,
        employment_status=EmploymentStatus(args.employment_status),
        job_level=JobLevel(args.job_level) if args.job_level else None,
    )
    await store.put_actor(actor.id, ActorAttributes.from_actor(actor))

    if args.resource and await store.find_resource(args.resource) is None:
        await store.put_resource(
            Resource(
                id=args.resource,
                owner_id=args.owner or actor.id,
                security_level=SecurityLevel(args.sensitivity),
                department=args.resource_department,
            )
        )

    try:
        decision = await engine.decide(
            actor,
            args.resource,
            args.action,
            args.permission,
            network_origin=args.ip,
            timeout=args.timeout,
        )
    except AccessControlError as e:
        print(json.dumps({"error": type(e).__name__, "message": str(e)}), file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps(decision.model_dump(mode="json"), indent=2))
    else:
        verdict = "ALLOWED" if decision.allowed else "DENIED"
        print(f"{verdict} by {decision.model.value}: {decision.reason}")

    return 0 if decision.allowed else 1


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Evaluate a unified access decision")

    parser.add_argument("--store", help="JSON store file (seeded demo data if absent)")
    parser.add_argument("--actor", default="cli-user", help="Actor ID")
    parser.add_argument("--role", default="EMPLOYEE", choices=sorted(ROLES), help="Actor role")
    parser.add_argument(
        "--clearance",
        default="INTERNAL",
        choices=[level.value for level in SecurityLevel],
        help="Actor clearance",
    )
    parser.add_argument("--department", help="Actor department")
    parser.add_argument(
        "--employment-status",
        default="ACTIVE",
        choices=[status.value for status in EmploymentStatus],
    )
    parser.add_argument("--job-level", choices=[level.value for level in JobLevel])
    parser.add_argument("--resource", help="Target resource ID")
    parser.add_argument("--owner", help="Owner of a newly created resource")
    parser.add_argument(
        "--sensitivity",
        default="INTERNAL",
        choices=[level.value for level in SecurityLevel],
        help="Security level of a newly created resource",
    )
    parser.add_argument("--resource-department", help="Department of a newly created resource")
    parser.add_argument(
        "--action",
        default="view",
        choices=[action.value for action in ResourceAction],
    )
    parser.add_argument("--permission", help="Permission name to require (enables RBAC)")
    parser.add_argument("--ip", help="Client network address")
    parser.add_argument("--timeout", type=float, help="Decision timeout in seconds")
    parser.add_argument("--json", action="store_true", help="Print the decision as JSON")

    args = parser.parse_args()

    configure_logging()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
