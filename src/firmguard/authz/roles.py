"""Fixed role enumeration.

Every role has exactly one label and one description. Permission sets live
in ``authz.permissions`` and are listed per role, never inherited.
"""

from enum import Enum

from src.firmguard.core.exceptions import ConfigurationError


class Role(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    BUSINESS_DEVELOPMENT = "business_development"
    CONSULTANT = "consultant"
    JV_PARTNER = "jv_partner"
    USER = "user"

    @classmethod
    def default(cls) -> "Role":
        """Role given to new users."""
        return cls.USER

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        """Convert a stored or configured value, rejecting unknown roles."""
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise ConfigurationError(f"Unknown role: {value!r}") from e

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]

    @property
    def description(self) -> str:
        return ROLE_DESCRIPTIONS[self]


ROLE_LABELS: dict[Role, str] = {
    Role.SUPERADMIN: "Super Administrator",
    Role.ADMIN: "Firm Administrator",
    Role.BUSINESS_DEVELOPMENT: "Business Development",
    Role.CONSULTANT: "Consultant",
    Role.JV_PARTNER: "JV Partner",
    Role.USER: "User",
}

ROLE_DESCRIPTIONS: dict[Role, str] = {
    Role.SUPERADMIN: "Full system access, bypass all restrictions",
    Role.ADMIN: "Firm administrator, manage users and projects",
    Role.BUSINESS_DEVELOPMENT: "Create and manage projects, full document access",
    Role.CONSULTANT: "Work on projects, create tasks and requirements",
    Role.JV_PARTNER: "Limited access, view projects and documents",
    Role.USER: "Basic access to own firm's projects",
}
