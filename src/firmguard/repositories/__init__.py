"""Repository layer - data access abstraction."""

from src.firmguard.repositories.audit import AuditLogRepository
from src.firmguard.repositories.base import BaseRepository
from src.firmguard.repositories.scoped import (
    DocumentRepository,
    ProjectRepository,
    ScopedRepository,
    TaskRepository,
    UserRepository,
)

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "DocumentRepository",
    "ProjectRepository",
    "ScopedRepository",
    "TaskRepository",
    "UserRepository",
]
