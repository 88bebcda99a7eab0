"""Project aggregate and the work items hanging off it."""

from datetime import date, datetime

from sqlmodel import Field, SQLModel

from src.firmguard.models.base import utc_now
from src.firmguard.models.enums import WorkStatus
from src.firmguard.models.tenancy import HasFirmAssociations, HasProjectOwnership


class Project(SQLModel, HasFirmAssociations, table=True):
    """Project visible to every firm associated through ``project_firms``."""

    __tablename__ = "projects"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(max_length=255, index=True)
    status: str = Field(default="active", max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Task(SQLModel, HasProjectOwnership, table=True):
    __tablename__ = "tasks"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    title: str = Field(max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    assigned_user_id: int | None = Field(default=None, foreign_key="users.id")
    assigned_firm_id: int | None = Field(default=None, foreign_key="firms.id")
    status: str = Field(default=WorkStatus.TODO.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Requirement(SQLModel, HasProjectOwnership, table=True):
    __tablename__ = "requirements"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    description: str = Field(max_length=2000)
    priority: str = Field(default="medium", max_length=20)
    assigned_user_id: int | None = Field(default=None, foreign_key="users.id")
    assigned_firm_id: int | None = Field(default=None, foreign_key="firms.id")
    status: str = Field(default=WorkStatus.TODO.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Milestone(SQLModel, HasProjectOwnership, table=True):
    __tablename__ = "milestones"

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True, ondelete="CASCADE")
    title: str = Field(max_length=255)
    due_date: date | None = Field(default=None)
    status: str = Field(default=WorkStatus.TODO.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
