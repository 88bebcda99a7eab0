"""FastAPI dependency injection definitions."""

from src.firmguard.api.dependencies.auth import CurrentPrincipal, get_current_principal
from src.firmguard.api.dependencies.db import DBSession, get_db_session
from src.firmguard.api.dependencies.repositories import (
    DocumentRepo,
    ProjectRepo,
    TaskRepo,
    UserRepo,
)
from src.firmguard.api.dependencies.services import (
    AnonymousAuditServiceDep,
    AuditServiceDep,
    TenantScopeDep,
    get_anonymous_audit_service,
    get_audit_service,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Auth
    "CurrentPrincipal",
    "get_current_principal",
    # Repositories
    "DocumentRepo",
    "ProjectRepo",
    "TaskRepo",
    "UserRepo",
    # Services
    "AnonymousAuditServiceDep",
    "AuditServiceDep",
    "TenantScopeDep",
    "get_anonymous_audit_service",
    "get_audit_service",
]
