"""Task schemas for API request/response."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.firmguard.models.enums import WorkStatus


class TaskCreate(BaseModel):
    """Schema for creating a task.

    Every id field is a cross-tenant reference and is checked against the
    caller's firm before the handler runs.
    """

    project_id: int
    title: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    assigned_user_id: int | None = None
    assigned_firm_id: int | None = None
    status: WorkStatus = WorkStatus.TODO

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Task title cannot be empty or whitespace only")
        return v


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    title: str
    description: str | None
    assigned_user_id: int | None
    assigned_firm_id: int | None
    status: str
    created_at: datetime
    updated_at: datetime
