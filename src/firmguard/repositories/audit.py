"""Repository for AuditLog entity. Insert and read only."""

from sqlmodel import select

from src.firmguard.models import AuditLog
from src.firmguard.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    model = AuditLog

    async def list_logs(
        self,
        cursor: str | None = None,
        limit: int = 50,
        action_type: str | None = None,
        principal_id: int | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List audit logs with cursor pagination, newest first.

        Args:
            cursor: Pagination cursor
            limit: Maximum items to return
            action_type: Optional action filter
            principal_id: Optional actor filter

        Returns:
            Tuple of (logs, next_cursor, has_more)
        """
        query = select(AuditLog)
        if action_type:
            query = query.where(AuditLog.action_type == action_type)
        if principal_id is not None:
            query = query.where(AuditLog.principal_id == principal_id)
        return await self.paginate(query, cursor, limit, AuditLog.id)

    async def list_by_entity(
        self,
        entity_type: str,
        entity_id: int,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        query = select(AuditLog).where(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id == entity_id,
        )
        return await self.paginate(query, cursor, limit, AuditLog.id)
