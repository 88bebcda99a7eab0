"""Project/firm association graph queries shared by scoping and access checks."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from src.firmguard.models import Project, ProjectFirm, User


def visible_project_ids(firm_id: int) -> Any:
    """Subquery of project ids associated with the firm."""
    return select(ProjectFirm.project_id).where(ProjectFirm.firm_id == firm_id)


def partner_firm_ids(firm_id: int) -> Any:
    """Subquery of firms sharing at least one project with the firm."""
    mine = aliased(ProjectFirm)
    theirs = aliased(ProjectFirm)
    return (
        select(theirs.firm_id)
        .join(mine, mine.project_id == theirs.project_id)
        .where(mine.firm_id == firm_id)
    )


async def project_exists(session: AsyncSession, project_id: int) -> bool:
    result = await session.execute(select(Project.id).where(Project.id == project_id))
    return result.scalar_one_or_none() is not None


async def firm_on_project(session: AsyncSession, project_id: int, firm_id: int) -> bool:
    """True when a project_firms edge links the firm to the project."""
    result = await session.execute(
        select(ProjectFirm.id).where(
            ProjectFirm.project_id == project_id,
            ProjectFirm.firm_id == firm_id,
        )
    )
    return result.first() is not None


async def owning_project_id(session: AsyncSession, model: Any, entity_id: int) -> int | None:
    """Project id of a project-owned row, or None when the row is missing."""
    result = await session.execute(select(model.project_id).where(model.id == entity_id))
    return result.scalar_one_or_none()


async def user_firm(session: AsyncSession, user_id: int) -> tuple[bool, int | None]:
    """Return (exists, firm_id) for a user."""
    result = await session.execute(select(User.firm_id).where(User.id == user_id))
    row = result.first()
    if row is None:
        return False, None
    return True, row[0]
