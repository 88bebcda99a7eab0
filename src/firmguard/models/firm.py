"""Firm model and the project/firm association edge."""

from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.firmguard.models.base import utc_now
from src.firmguard.models.enums import FirmStatus, FirmType, RoleInProject
from src.firmguard.models.tenancy import IsTenant


class Firm(SQLModel, IsTenant, table=True):
    """Tenant unit. Owns users and takes part in projects."""

    __tablename__ = "firms"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, index=True)
    type: str = Field(default=FirmType.INTERNAL.value, max_length=20)
    status: str = Field(default=FirmStatus.ACTIVE.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProjectFirm(SQLModel, table=True):
    """Many-to-many edge between projects and firms.

    This edge, not an entity's own column, decides which firms see a project
    and everything hanging off it.
    """

    __tablename__ = "project_firms"
    __table_args__ = (UniqueConstraint("project_id", "firm_id", name="uq_project_firms"),)

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    firm_id: int = Field(foreign_key="firms.id", index=True, ondelete="CASCADE")
    role_in_project: str = Field(default=RoleInProject.INTERNAL.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
