"""Service factory dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.firmguard.api.dependencies.auth import CurrentPrincipal
from src.firmguard.core.db.engine import get_engine
from src.firmguard.repositories import AuditLogRepository
from src.firmguard.services.audit_service import AuditService
from src.firmguard.tenancy.scope import TenantScope, get_tenant_scope


async def get_audit_service(principal: CurrentPrincipal) -> AsyncGenerator[AuditService]:
    """Get audit service with an isolated session.

    The dedicated session commits independently from business transactions,
    so audit entries survive a rolled back request.
    """
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield AuditService(AuditLogRepository(session), session, principal)


async def get_anonymous_audit_service() -> AsyncGenerator[AuditService]:
    """Audit service for endpoints reached before authentication (login)."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield AuditService(AuditLogRepository(session), session)


AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]
AnonymousAuditServiceDep = Annotated[AuditService, Depends(get_anonymous_audit_service)]
TenantScopeDep = Annotated[TenantScope, Depends(get_tenant_scope)]
