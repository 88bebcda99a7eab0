"""Tenant scope engine.

Every data query for a non-superadmin principal is narrowed to rows its firm
may see. Dispatch happens on the capability mixins a model declares; models
without a usable declaration match nothing.
"""

from collections.abc import Iterable
from functools import lru_cache
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import and_, false, or_
from sqlmodel import SQLModel, select

import src.firmguard.models  # noqa: F401 - registers table models
from src.firmguard.core.exceptions import AccessDenied, ConfigurationError
from src.firmguard.core.logging import get_logger
from src.firmguard.models.tenancy import (
    HasFirmAssociations,
    HasFirmMembership,
    HasFirmOwnership,
    HasProjectOwnership,
    IsTenant,
    TenantOwned,
    capabilities_of,
)
from src.firmguard.tenancy.graph import partner_firm_ids, visible_project_ids
from src.firmguard.tenancy.principal import Principal

T = TypeVar("T")

if TYPE_CHECKING:
    from src.firmguard.services.audit_service import AuditService

logger = get_logger(__name__)

REQUIRED_TABLES: tuple[str, ...] = (
    "users",
    "firms",
    "projects",
    "tasks",
    "requirements",
    "milestones",
    "documents",
)


def _table_models() -> list[type]:
    """Walk SQLModel subclasses and keep the ones mapped to a table."""
    found: list[type] = []
    pending: list[type] = list(SQLModel.__subclasses__())
    while pending:
        cls = pending.pop()
        pending.extend(cls.__subclasses__())
        if getattr(cls, "__table__", None) is not None and cls not in found:
            found.append(cls)
    return found


class ScopeRegistry:
    """Index of tenant-owned table models by table name."""

    def __init__(
        self,
        models: Iterable[type] | None = None,
        required_tables: Iterable[str] = REQUIRED_TABLES,
    ):
        self.models = list(models) if models is not None else _table_models()
        self.required_tables = tuple(required_tables)
        self._by_table: dict[str, type] = {
            model.__tablename__: model  # type: ignore[attr-defined]
            for model in self.models
            if capabilities_of(model)
        }

    def is_registered(self, model: type) -> bool:
        table = getattr(model, "__tablename__", None)
        return table is not None and self._by_table.get(table) is model

    def get(self, table: str) -> type | None:
        return self._by_table.get(table)

    def problems(self) -> list[str]:
        """Describe every configuration gap. Empty when the registry is sound."""
        problems = []
        for model in self.models:
            if issubclass(model, TenantOwned) and not capabilities_of(model):
                problems.append(
                    f"{model.__name__} is tenant-owned but declares no ownership capability"
                )
        for table in self.required_tables:
            if table not in self._by_table:
                problems.append(f"Table {table!r} has no tenant scope")
        return problems

    def self_check(self) -> None:
        """Raise ConfigurationError if any tenant table could escape scoping."""
        problems = self.problems()
        if problems:
            raise ConfigurationError("; ".join(problems))


class TenantScope:
    """Applies, stamps and (for superadmins) bypasses tenant scoping."""

    def __init__(self, registry: ScopeRegistry | None = None):
        self.registry = registry or ScopeRegistry()

    def apply_scope(self, principal: Principal, model: type, query: Any) -> Any:
        """Narrow a SELECT on ``model`` to rows visible to the principal.

        Superadmins get the query back unchanged. A non-superadmin without a
        firm, or any model with no registered scope, gets a query that
        matches nothing.
        """
        if principal.is_superadmin:
            return query
        if principal.firm_id is None:
            return query.where(false())
        if not self.registry.is_registered(model):
            logger.critical(
                "Tenant scope missing, query blocked",
                model=getattr(model, "__name__", repr(model)),
                principal_id=principal.id,
            )
            return query.where(false())
        return query.where(self.condition(model, principal.firm_id))

    def condition(self, model: Any, firm_id: int) -> Any:
        """Row filter for a registered model and a firm."""
        caps = capabilities_of(model)

        if IsTenant in caps:
            return or_(model.id == firm_id, model.id.in_(partner_firm_ids(firm_id)))
        if HasFirmMembership in caps:
            return model.firm_id == firm_id
        if HasFirmAssociations in caps:
            return model.id.in_(visible_project_ids(firm_id))
        if HasProjectOwnership in caps and HasFirmOwnership in caps:
            return and_(
                or_(model.firm_id.is_(None), model.firm_id == firm_id),
                or_(model.project_id.is_(None), model.project_id.in_(visible_project_ids(firm_id))),
                or_(model.firm_id.is_not(None), model.project_id.is_not(None)),
            )
        if HasProjectOwnership in caps:
            return model.project_id.in_(visible_project_ids(firm_id))
        if HasFirmOwnership in caps:
            return model.firm_id == firm_id
        return false()

    def select(self, principal: Principal, model: type) -> Any:
        return self.apply_scope(principal, model, select(model))

    def stamp_owner(self, principal: Principal, entity: T) -> T:
        """Fill in the caller's firm on a new firm-owned entity.

        An explicit ``firm_id`` is never overwritten, and superadmins are
        never stamped.
        """
        if principal.is_superadmin or principal.firm_id is None:
            return entity
        caps = capabilities_of(type(entity))
        if HasFirmOwnership not in caps and HasFirmMembership not in caps:
            return entity
        if getattr(entity, "firm_id", None) is None:
            entity.firm_id = principal.firm_id  # type: ignore[attr-defined]
        return entity

    async def bypass_scope(
        self,
        principal: Principal,
        model: type,
        reason: str,
        audit: "AuditService",
    ) -> Any:
        """Return an unscoped SELECT on ``model`` after auditing the bypass.

        Raises:
            AccessDenied: If the principal is not a superadmin
            AuditWriteError: If the bypass could not be recorded
        """
        if not principal.is_superadmin:
            raise AccessDenied("Scope bypass requires superadmin")
        await audit.for_principal(principal).log_scope_bypass(model.__name__.lower(), reason)
        logger.info("Tenant scope bypassed", model=model.__name__, reason=reason)
        return select(model)


@lru_cache
def get_tenant_scope() -> TenantScope:
    return TenantScope()
