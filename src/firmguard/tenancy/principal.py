"""The authenticated caller, as passed through every authorization call."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.firmguard.authz.roles import Role
from src.firmguard.models.enums import UserStatus

if TYPE_CHECKING:
    from src.firmguard.models.user import User


@dataclass(frozen=True)
class Principal:
    """Immutable snapshot of the caller for one request.

    Attributes:
        id: User id
        role: The caller's role
        firm_id: The caller's firm; None is only consistent for superadmins
        status: "active" or "inactive"
        email: For log context only
    """

    id: int
    role: Role
    firm_id: int | None
    status: str = UserStatus.ACTIVE.value
    email: str | None = None

    @classmethod
    def from_user(cls, user: "User") -> "Principal":
        if user.id is None:
            raise ValueError("Cannot build a principal from an unsaved user")
        return cls(
            id=user.id,
            role=Role.parse(user.role),
            firm_id=user.firm_id,
            status=user.status,
            email=user.email,
        )

    @property
    def is_superadmin(self) -> bool:
        return self.role is Role.SUPERADMIN

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
