"""Document schemas for API responses."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class DocumentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    uploaded_by: int | None
    firm_id: int | None
    project_id: int | None
    status: str
    created_at: datetime
