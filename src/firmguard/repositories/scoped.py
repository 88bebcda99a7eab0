"""Tenant-scoped repositories - every read goes through the scope engine."""

from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from src.firmguard.models import Document, Project, Task, User
from src.firmguard.repositories.base import BaseRepository
from src.firmguard.tenancy.principal import Principal
from src.firmguard.tenancy.scope import TenantScope, get_tenant_scope

ModelType = TypeVar("ModelType", bound=SQLModel)


class ScopedRepository(BaseRepository[ModelType]):
    """Repository bound to one principal.

    ``base_query`` is always passed through ``apply_scope``, so every method
    inherited from BaseRepository (lookups, listing, pagination) sees only
    rows the principal's firm may see.
    """

    def __init__(
        self,
        session: AsyncSession,
        principal: Principal,
        scope: TenantScope | None = None,
    ):
        super().__init__(session)
        self.principal = principal
        self.scope = scope or get_tenant_scope()

    def base_query(self) -> Any:
        return self.scope.apply_scope(self.principal, self.model, super().base_query())

    def scoped(self, query: Any) -> Any:
        """Scope an arbitrary SELECT on this repository's model."""
        return self.scope.apply_scope(self.principal, self.model, query)

    async def create(self, entity: ModelType) -> ModelType:
        """Stamp the owner and add the entity in the current transaction."""
        self.scope.stamp_owner(self.principal, entity)
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def list_page(
        self,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[ModelType], str | None, bool]:
        return await self.paginate(
            self.base_query(),
            cursor,
            limit,
            self.model.id,  # type: ignore[attr-defined]
        )


class UserRepository(ScopedRepository[User]):
    model = User


class ProjectRepository(ScopedRepository[Project]):
    model = Project


class TaskRepository(ScopedRepository[Task]):
    model = Task


class DocumentRepository(ScopedRepository[Document]):
    model = Document
