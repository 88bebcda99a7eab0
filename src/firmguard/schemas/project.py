"""Project schemas for API request/response."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.firmguard.models.enums import RoleInProject


class ProjectCreate(BaseModel):
    """Schema for creating a project.

    The caller's firm is linked to the new project automatically.
    """

    title: str = Field(min_length=1, max_length=255)
    role_in_project: RoleInProject = RoleInProject.INTERNAL

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project title cannot be empty or whitespace only")
        return v


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: str
    created_at: datetime
    updated_at: datetime
