"""Resource access checker - may this principal touch a referenced entity?"""

from typing import Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.firmguard.core.exceptions import AccessDenied
from src.firmguard.core.logging import get_logger
from src.firmguard.models import Document, Milestone, Requirement, Task
from src.firmguard.tenancy import graph
from src.firmguard.tenancy.principal import Principal

logger = get_logger(__name__)

PROJECT_OWNED = {
    "task": Task,
    "requirement": Requirement,
    "milestone": Milestone,
}


def resource_type_for_param(param: str) -> str:
    """Map a path parameter name to a resource type: ``project_id`` -> ``project``."""
    return param.removesuffix("_id")


_RESOURCE_ID = TypeAdapter(int)


def parse_resource_id(value: Any) -> int:
    """Read a resource id with the rules route and body validation use.

    Anything request validation would coerce to an id (``True``, ``"2.0"``)
    yields that id, so the check and the handler see the same resource.

    Raises:
        AccessDenied: If the value is not a valid id
    """
    try:
        return _RESOURCE_ID.validate_python(value)
    except ValidationError as e:
        raise AccessDenied("Access denied: Invalid resource reference.") from e


class ResourceAccessChecker:
    """Decides access to a single entity by type and id.

    Unknown resource types are allowed and left to the handler. Referenced
    rows that do not exist are denied.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def check_access(self, principal: Principal, resource_type: str, resource_id: int) -> bool:
        if principal.is_superadmin:
            return True
        if principal.firm_id is None:
            return False

        if resource_type == "firm":
            return resource_id == principal.firm_id
        if resource_type == "project":
            return await self.can_access_project(principal, resource_id)
        if resource_type in PROJECT_OWNED:
            project_id = await graph.owning_project_id(
                self.session, PROJECT_OWNED[resource_type], resource_id
            )
            if project_id is None:
                return False
            return await self.can_access_project(principal, project_id)
        if resource_type == "document":
            return await self._can_access_document(principal, resource_id)
        if resource_type == "user":
            exists, firm_id = await graph.user_firm(self.session, resource_id)
            return exists and firm_id == principal.firm_id

        logger.debug("No access rule for resource type", resource_type=resource_type)
        return True

    async def can_access_project(self, principal: Principal, project_id: int) -> bool:
        if principal.is_superadmin:
            return True
        if principal.firm_id is None:
            return False
        if not await graph.project_exists(self.session, project_id):
            return False
        return await graph.firm_on_project(self.session, project_id, principal.firm_id)

    async def _can_access_document(self, principal: Principal, document_id: int) -> bool:
        result = await self.session.execute(
            select(Document.firm_id, Document.project_id).where(Document.id == document_id)
        )
        row = result.first()
        if row is None:
            return False
        firm_id, project_id = row
        if firm_id is not None and firm_id != principal.firm_id:
            return False
        if project_id is not None:
            return await self.can_access_project(principal, project_id)
        # Neither reference: allowed here, hidden by scoped queries
        return True

    async def can_manage_user(self, principal: Principal, user_id: int) -> bool:
        """Target user exists and belongs to the principal's firm."""
        return await self.check_access(principal, "user", user_id)

    async def resource_firm_id(self, resource_type: str, resource_id: int) -> int | None:
        """Firm a resource directly belongs to, where it has one."""
        if resource_type == "firm":
            return resource_id
        if resource_type == "user":
            return (await graph.user_firm(self.session, resource_id))[1]
        if resource_type == "document":
            result = await self.session.execute(
                select(Document.firm_id).where(Document.id == resource_id)
            )
            return result.scalar_one_or_none()
        return None

    async def within_firm(self, firm_id: int | None, resource_type: str, resource_id: int) -> bool:
        """Whether a resource lives inside ``firm_id``'s tenant boundary.

        Used to tell a superadmin's own-firm access from cross-tenant access.
        """
        if firm_id is None:
            return False
        if resource_type in ("firm", "user", "document"):
            owner = await self.resource_firm_id(resource_type, resource_id)
            if owner is not None or resource_type != "document":
                return owner == firm_id
        project_id: int | None
        if resource_type == "project":
            project_id = resource_id
        elif resource_type in PROJECT_OWNED:
            project_id = await graph.owning_project_id(
                self.session, PROJECT_OWNED[resource_type], resource_id
            )
        elif resource_type == "document":
            result = await self.session.execute(
                select(Document.project_id).where(Document.id == resource_id)
            )
            project_id = result.scalar_one_or_none()
        else:
            return True
        if project_id is None:
            return False
        return await graph.firm_on_project(self.session, project_id, firm_id)
