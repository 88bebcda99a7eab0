"""Test helper functions for common data creation patterns."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import select

from src.firmguard.authz.roles import Role
from src.firmguard.core.security import create_access_token
from src.firmguard.models import AuditLog, Firm, Project, ProjectFirm, RoleInProject, User
from src.firmguard.tenancy.principal import Principal
from tests.factories import FirmFactory, ProjectFactory, ProjectFirmFactory, UserFactory


async def create_firm(session: AsyncSession, **firm_kwargs) -> Firm:
    firm = FirmFactory.build(**firm_kwargs)
    session.add(firm)
    await session.flush()
    return firm


async def create_project(
    session: AsyncSession,
    *firms: Firm,
    role: RoleInProject = RoleInProject.INTERNAL,
    **project_kwargs,
) -> Project:
    """Create a project and link it to each of the given firms.

    Args:
        session: Database session
        *firms: Firms to associate through project_firms
        role: role_in_project for every edge
        **project_kwargs: Additional args passed to ProjectFactory

    Returns:
        The flushed project
    """
    project = ProjectFactory.build(**project_kwargs)
    session.add(project)
    await session.flush()
    for firm in firms:
        await link_firm(session, project, firm, role)
    return project


async def link_firm(
    session: AsyncSession,
    project: Project,
    firm: Firm,
    role: RoleInProject = RoleInProject.INTERNAL,
) -> ProjectFirm:
    edge = ProjectFirmFactory.build(
        project_id=project.id, firm_id=firm.id, role_in_project=role.value
    )
    session.add(edge)
    await session.flush()
    return edge


async def create_user(
    session: AsyncSession,
    firm: Firm | None,
    role: Role = Role.USER,
    **user_kwargs,
) -> User:
    user = UserFactory.build(
        firm_id=firm.id if firm else None,
        role=role.value,
        **user_kwargs,
    )
    session.add(user)
    await session.flush()
    return user


@dataclass
class World:
    """Two firms with one project each, plus users on both sides.

    superadmin belongs to f1; firmless is a regular user with no firm.
    """

    f1: Firm
    f2: Firm
    p1: Project
    p2: Project
    admin1: User
    user1: User
    user2: User
    superadmin: User
    firmless: User


async def seed_world(session: AsyncSession) -> World:
    f1 = await create_firm(session, name="Firm One")
    f2 = await create_firm(session, name="Firm Two")
    p1 = await create_project(session, f1, title="Project One")
    p2 = await create_project(session, f2, title="Project Two")
    world = World(
        f1=f1,
        f2=f2,
        p1=p1,
        p2=p2,
        admin1=await create_user(session, f1, Role.ADMIN, name="Admin One"),
        user1=await create_user(session, f1, Role.USER, name="User One"),
        user2=await create_user(session, f2, Role.USER, name="User Two"),
        superadmin=await create_user(session, f1, Role.SUPERADMIN, name="Super Admin"),
        firmless=await create_user(session, None, Role.USER, name="No Firm"),
    )
    await session.commit()
    return world


def principal_for(user: User) -> Principal:
    return Principal.from_user(user)


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header for a persisted user."""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}  # type: ignore[arg-type]


async def audit_entries(engine: AsyncEngine, action_type: str | None = None) -> list[AuditLog]:
    """Read audit entries on a fresh session, oldest first."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        query = select(AuditLog).order_by(AuditLog.id)  # type: ignore[arg-type]
        if action_type is not None:
            query = query.where(AuditLog.action_type == action_type)
        result = await session.execute(query)
        return list(result.scalars().all())
