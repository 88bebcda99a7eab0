"""Audit logging service - records authorization decisions and bypasses."""

import contextlib
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from src.firmguard.core.exceptions import AuditWriteError
from src.firmguard.core.logging import get_logger
from src.firmguard.core.request_context import get_request_context
from src.firmguard.models import AuditAction, AuditLog
from src.firmguard.repositories.audit import AuditLogRepository
from src.firmguard.tenancy.principal import Principal

logger = get_logger(__name__)

# An audited entity: a model instance, or an explicit (type, id) pair
Entity = SQLModel | tuple[str, int | None]


def entity_ref(entity: Entity | None) -> tuple[str | None, int | None]:
    """Resolve an entity to the (entity_type, entity_id) stored on the entry."""
    if entity is None:
        return None, None
    if isinstance(entity, tuple):
        return entity
    return type(entity).__name__.lower(), getattr(entity, "id", None)


class AuditService:
    """Service for recording audit logs.

    Runs on its own session so that a rolled back business transaction
    never takes audit entries with it. Entries are committed as soon as
    they are written.
    """

    def __init__(
        self,
        audit_repo: AuditLogRepository,
        session: AsyncSession,
        principal: Principal | None = None,
    ):
        self.audit_repo = audit_repo
        self.session = session
        self.principal = principal

    def for_principal(self, principal: Principal) -> "AuditService":
        """Same store, entries attributed to another principal."""
        return AuditService(self.audit_repo, self.session, principal)

    def _enrich(self, metadata: dict[str, Any] | None) -> dict[str, Any]:
        details = dict(metadata or {})
        ctx = get_request_context()
        if ctx:
            details.setdefault("ip_address", ctx.ip_address)
            details.setdefault("user_agent", ctx.user_agent)
            details.setdefault("url", ctx.url)
            details.setdefault("method", ctx.method)
            details.setdefault("request_id", ctx.request_id)
        if self.principal:
            details.setdefault("role", self.principal.role.value)
            details.setdefault("firm_id", self.principal.firm_id)
            details.setdefault("is_superadmin", self.principal.is_superadmin)
        return details

    async def log(
        self,
        action_type: AuditAction | str,
        entity: Entity | None = None,
        metadata: dict[str, Any] | None = None,
        *,
        critical: bool = False,
    ) -> AuditLog | None:
        """Record an audit log entry.

        Args:
            action_type: The event being recorded
            entity: Entity the event is about, if any
            metadata: Extra details; request and caller context are added
            critical: If True a write failure raises instead of being logged

        Returns:
            The created AuditLog, or None if a non-critical write failed

        Raises:
            AuditWriteError: If ``critical`` and the entry could not be stored
        """
        action = action_type.value if isinstance(action_type, AuditAction) else action_type
        entity_type, entity_id = entity_ref(entity)
        try:
            audit_log = AuditLog(
                principal_id=self.principal.id if self.principal else None,
                action_type=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=self._enrich(metadata),
            )
            self.audit_repo.add(audit_log)
            await self.session.commit()
        except SQLAlchemyError as e:
            with contextlib.suppress(SQLAlchemyError):
                await self.session.rollback()
            if critical:
                logger.error("Critical audit write failed", action_type=action, error=str(e))
                raise AuditWriteError(f"Could not record audit entry {action!r}") from e
            logger.warning("Failed to record audit log", action_type=action, error=str(e))
            return None

        logger.debug(
            "Audit log recorded",
            action_type=action,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        return audit_log

    async def log_permission_override(
        self,
        ability: str,
        entity: Entity | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        """Superadmin passed a sensitive ability without holding a grant."""
        metadata = {**(details or {}), "ability": ability, "gate_bypass": True}
        return await self.log(AuditAction.PERMISSION_OVERRIDE, entity, metadata, critical=True)

    async def log_cross_tenant_access(
        self,
        entity: Entity,
        action: str,
        *,
        is_write: bool,
        allowed: bool = True,
        resource_firm_id: int | None = None,
    ) -> AuditLog | None:
        metadata: dict[str, Any] = {"action": action, "is_write": is_write, "allowed": allowed}
        if resource_firm_id is None:
            resource_firm_id = getattr(entity, "firm_id", None)
        if resource_firm_id is not None:
            metadata["resource_firm_id"] = resource_firm_id
        return await self.log(AuditAction.CROSS_TENANT_ACCESS, entity, metadata, critical=True)

    async def log_superadmin_access(self, entity: Entity, action: str) -> AuditLog | None:
        return await self.log(AuditAction.SUPERADMIN_ACCESS, entity, {"action": action})

    async def log_permission_denied(
        self,
        action_type: AuditAction,
        reason: str,
        details: dict[str, Any] | None = None,
        entity: Entity | None = None,
    ) -> AuditLog | None:
        """Record a denial. Denials are critical: no silent refusals."""
        metadata = {**(details or {}), "reason": reason}
        return await self.log(action_type, entity, metadata, critical=True)

    async def log_scope_bypass(self, entity_type: str, reason: str) -> AuditLog | None:
        return await self.log(
            AuditAction.SCOPE_BYPASS,
            (entity_type, None),
            {"reason": reason, "bypass": True},
            critical=True,
        )

    async def list_logs(
        self,
        cursor: str | None = None,
        limit: int = 50,
        action_type: str | None = None,
        principal_id: int | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        return await self.audit_repo.list_logs(
            cursor=cursor,
            limit=limit,
            action_type=action_type,
            principal_id=principal_id,
        )

    async def list_entity_history(
        self,
        entity_type: str,
        entity_id: int,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs for a specific entity."""
        return await self.audit_repo.list_by_entity(
            entity_type=entity_type,
            entity_id=entity_id,
            cursor=cursor,
            limit=limit,
        )
