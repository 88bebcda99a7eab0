"""Audit log model - append-only record of security-relevant events."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, Index, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.firmguard.models.base import utc_now


class AuditAction(str, Enum):
    """Audit action types for type-safe logging."""

    # Privileged access
    SUPERADMIN_ACCESS = "superadmin_access"
    CROSS_TENANT_ACCESS = "cross_tenant_access"
    PERMISSION_OVERRIDE = "permission_override"
    SCOPE_BYPASS = "scope_bypass"

    # Denials
    ACCESS_DENIED = "access_denied"
    PERMISSION_DENIED = "permission_denied"
    ROLE_ACCESS_DENIED = "role_access_denied"
    SUPERADMIN_REQUIRED = "superadmin_required"
    MISSING_TENANT = "missing_tenant"

    # Diagnostics
    POTENTIAL_DATA_LEAK = "potential_data_leak"
    MISSING_TENANT_SCOPE = "missing_tenant_scope"
    TENANT_VERIFICATION_FAILED = "tenant_verification_failed"

    # Role administration
    ROLE_CHANGE = "role_change"
    ROLE_CHANGE_CLI = "role_change_cli"

    # Auth
    USER_LOGIN = "user_login"


class AuditLog(SQLModel, table=True):
    """Immutable audit entry.

    ``details`` is stored in the ``metadata`` column; the attribute name
    differs because SQLAlchemy reserves ``metadata`` on declarative classes.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_principal_timestamp", "principal_id", "timestamp"),
        Index("ix_audit_logs_action_timestamp", "action_type", "timestamp"),
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    principal_id: int | None = Field(default=None, foreign_key="users.id", index=True)
    action_type: str = Field(max_length=50)
    entity_type: str | None = Field(default=None, max_length=50)
    entity_id: int | None = Field(default=None)
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(
            "metadata",
            JSON().with_variant(JSONB(), "postgresql"),
            nullable=False,
        ),
    )
    timestamp: datetime = Field(default_factory=utc_now)


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper: Any, connection: Any, target: AuditLog) -> None:
    raise RuntimeError("Audit log entries are immutable")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper: Any, connection: Any, target: AuditLog) -> None:
    raise RuntimeError("Audit log entries cannot be deleted")
