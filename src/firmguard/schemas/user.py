"""User and role schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr

from src.firmguard.authz.roles import Role


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: str
    role: str
    firm_id: int | None
    status: str
    created_at: datetime


class RoleChangeRequest(BaseModel):
    role: Role


class RoleRead(BaseModel):
    """A role with its label, description and permission keys."""

    value: str
    label: str
    description: str
    permissions: list[str]


class RoleListResponse(BaseModel):
    roles: list[RoleRead]
    assignable: list[str]
