"""Document model - owned by a firm, a project, or both."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from src.firmguard.models.base import utc_now
from src.firmguard.models.tenancy import HasFirmOwnership, HasProjectOwnership


class Document(SQLModel, HasProjectOwnership, HasFirmOwnership, table=True):
    """Uploaded document metadata.

    Both references are optional. A document with neither is orphaned and
    hidden from scoped queries.
    """

    __tablename__ = "documents"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    uploaded_by: int | None = Field(default=None, foreign_key="users.id")
    firm_id: int | None = Field(default=None, foreign_key="firms.id", index=True)
    project_id: int | None = Field(
        default=None, foreign_key="projects.id", index=True, ondelete="CASCADE"
    )
    status: str = Field(default="pending_review", max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
