"""Operator commands.

Usage::

    python -m src.firmguard.cli migrate [<revision>]
    python -m src.firmguard.cli verify [--fix]
    python -m src.firmguard.cli role <email> [<role>] [--permissions]
    python -m src.firmguard.cli role --list
"""

import argparse
import asyncio
import sys
from collections.abc import Sequence
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import select

from src.firmguard.authz.permissions import permissions_for
from src.firmguard.authz.roles import Role
from src.firmguard.core.config import get_settings
from src.firmguard.core.db import dispose_engine, get_engine, get_session, run_migrations_sync
from src.firmguard.core.exceptions import ConfigurationError
from src.firmguard.core.logging import get_logger, setup_logging
from src.firmguard.models import AuditAction, User
from src.firmguard.models.base import utc_now
from src.firmguard.repositories import AuditLogRepository
from src.firmguard.services.audit_service import AuditService
from src.firmguard.tenancy.scope import get_tenant_scope
from src.firmguard.tenancy.verification import TenantVerifier

logger = get_logger(__name__)


async def _audit(
    engine: AsyncEngine,
    action: AuditAction,
    entity: tuple[str, int | None] | None,
    metadata: dict[str, Any],
) -> None:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        await AuditService(AuditLogRepository(session), session).log(
            action, entity, metadata, critical=True
        )


async def verify(fix: bool = False, engine: AsyncEngine | None = None) -> int:
    """Run tenant isolation checks. Returns the process exit code."""
    engine = engine or get_engine()
    async with get_session(engine) as session:
        report = await TenantVerifier(session, get_tenant_scope()).run(fix=fix)

    if report.ok:
        print("Tenant isolation verified: no issues found.")
        return 0

    print(f"Found {len(report.issues)} issue(s):")
    for issue in report.issues:
        target = f" [{issue.entity_type}#{issue.entity_id}]" if issue.entity_id is not None else ""
        print(f"  - {issue.check}: {issue.message}{target}")
    if report.fixed:
        print(f"Fixed {len(report.fixed)} issue(s) by deleting rows with an invalid project.")

    await _audit(engine, AuditAction.TENANT_VERIFICATION_FAILED, None, report.summary())
    return 1


def print_roles() -> None:
    print("Available Roles:")
    for role in Role:
        print(f"  {role.value} ({role.label})")
        print(f"    {role.description}")


def print_permissions(role: Role) -> None:
    print(f"Permissions for role: {role.value}")
    grouped: dict[str, list[str]] = {}
    for permission in sorted(permissions_for(role), key=lambda p: p.value):
        grouped.setdefault(permission.domain, []).append(
            f"    - {permission.value}: {permission.description}"
        )
    for domain, lines in grouped.items():
        print(f"  {domain}:")
        for line in lines:
            print(line)


async def manage_role(
    email: str,
    new_role: str | None = None,
    show_permissions: bool = False,
    engine: AsyncEngine | None = None,
) -> int:
    """Show a user's role and optionally change it. Returns the exit code."""
    engine = engine or get_engine()
    async with get_session(engine) as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            print(f"User with email {email} not found.", file=sys.stderr)
            return 1

        print(f"User: {user.name} ({user.email})")
        print(f"Current Role: {user.role}")
        if show_permissions:
            print_permissions(Role.parse(user.role))

        if new_role is None:
            return 0

        try:
            role = Role.parse(new_role)
        except ConfigurationError:
            print(f"Invalid role: {new_role}", file=sys.stderr)
            print(f"Available roles: {', '.join(r.value for r in Role)}", file=sys.stderr)
            return 1

        old_role = user.role
        user.role = role.value
        user.updated_at = utc_now()
        await session.commit()
        user_id = user.id

    print(f"Role changed from {old_role} to {role.value}")
    await _audit(
        engine,
        AuditAction.ROLE_CHANGE_CLI,
        ("user", user_id),
        {"old_role": old_role, "new_role": role.value, "changed_by": "console"},
    )
    if show_permissions:
        print_permissions(role)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="firmguard")
    commands = parser.add_subparsers(dest="command", required=True)

    migrate_cmd = commands.add_parser("migrate", help="Apply database migrations")
    migrate_cmd.add_argument("revision", nargs="?", default="head", help="Target revision")

    verify_cmd = commands.add_parser("verify", help="Check tenant isolation consistency")
    verify_cmd.add_argument(
        "--fix",
        action="store_true",
        help="Delete tasks, requirements and milestones whose project no longer exists",
    )

    role_cmd = commands.add_parser("role", help="Manage user roles and view role permissions")
    role_cmd.add_argument("email", nargs="?", help="The email of the user")
    role_cmd.add_argument("role", nargs="?", help="The new role to assign")
    role_cmd.add_argument("--list", action="store_true", help="List all available roles")
    role_cmd.add_argument("--permissions", action="store_true", help="Show permissions for the role")
    return parser


async def _run(args: argparse.Namespace) -> int:
    try:
        if args.command == "migrate":
            # env.py runs its own event loop
            await asyncio.to_thread(run_migrations_sync, args.revision)
            return 0
        if args.command == "verify":
            return await verify(fix=args.fix)
        if args.list:
            print_roles()
            return 0
        if not args.email:
            print("An email is required unless --list is given.", file=sys.stderr)
            return 2
        return await manage_role(args.email, args.role, args.permissions)
    finally:
        await dispose_engine()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(get_settings().debug)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
