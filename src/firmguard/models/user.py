"""User model - the persisted side of a Principal."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from src.firmguard.authz.roles import Role
from src.firmguard.models.base import utc_now
from src.firmguard.models.enums import UserStatus
from src.firmguard.models.tenancy import HasFirmMembership


class User(SQLModel, HasFirmMembership, table=True):
    """Application user. ``firm_id`` may only be null for superadmins."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    name: str = Field(max_length=100)
    hashed_password: str = Field(max_length=255)
    role: str = Field(default=Role.default().value, max_length=50)
    firm_id: int | None = Field(default=None, foreign_key="firms.id", index=True)
    status: str = Field(default=UserStatus.ACTIVE.value, max_length=20)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_superadmin(self) -> bool:
        return self.role == Role.SUPERADMIN.value

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
