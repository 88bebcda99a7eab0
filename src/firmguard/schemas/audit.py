"""Audit log schemas for API responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditLogRead(BaseModel):
    """Audit log entry. ``metadata`` is read from the model's ``details``."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    principal_id: int | None
    action_type: str
    entity_type: str | None
    entity_id: int | None
    metadata: dict[str, Any] = Field(validation_alias="details")
    timestamp: datetime


class AuditLogListResponse(BaseModel):
    """Paginated audit log response."""

    items: list[AuditLogRead]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for fetching the next page. None if no more pages.",
    )
    has_more: bool = Field(
        default=False,
        description="Whether there are more items after this page.",
    )
