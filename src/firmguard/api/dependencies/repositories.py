"""Repository dependencies - each bound to the current Principal."""

from typing import Annotated

from fastapi import Depends

from src.firmguard.api.dependencies.auth import CurrentPrincipal
from src.firmguard.api.dependencies.db import DBSession
from src.firmguard.api.dependencies.services import TenantScopeDep
from src.firmguard.repositories import (
    DocumentRepository,
    ProjectRepository,
    TaskRepository,
    UserRepository,
)


def get_project_repository(
    session: DBSession, principal: CurrentPrincipal, scope: TenantScopeDep
) -> ProjectRepository:
    return ProjectRepository(session, principal, scope)


def get_task_repository(
    session: DBSession, principal: CurrentPrincipal, scope: TenantScopeDep
) -> TaskRepository:
    return TaskRepository(session, principal, scope)


def get_document_repository(
    session: DBSession, principal: CurrentPrincipal, scope: TenantScopeDep
) -> DocumentRepository:
    return DocumentRepository(session, principal, scope)


def get_user_repository(
    session: DBSession, principal: CurrentPrincipal, scope: TenantScopeDep
) -> UserRepository:
    return UserRepository(session, principal, scope)


ProjectRepo = Annotated[ProjectRepository, Depends(get_project_repository)]
TaskRepo = Annotated[TaskRepository, Depends(get_task_repository)]
DocumentRepo = Annotated[DocumentRepository, Depends(get_document_repository)]
UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
