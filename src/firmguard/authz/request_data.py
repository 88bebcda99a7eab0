"""Request body validation against cross-tenant references."""

from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.firmguard.authz.access import ResourceAccessChecker, parse_resource_id
from src.firmguard.core.exceptions import AccessDenied, DenialCode
from src.firmguard.tenancy import graph
from src.firmguard.tenancy.principal import Principal

CHECKED_FIELDS = ("project_id", "firm_id", "assigned_user_id", "assigned_firm_id")


def _reference(payload: Mapping[str, Any], field: str) -> int | None:
    """Id referenced by ``field``. Absent or null means no reference."""
    value = payload.get(field)
    if value is None:
        return None
    return parse_resource_id(value)


class RequestDataValidator:
    """Rejects payloads that link to resources outside the caller's tenant.

    Body fields are invisible to the path parameter check, so each reference
    field is checked here. The payload is never modified.
    """

    def __init__(self, session: AsyncSession, checker: ResourceAccessChecker | None = None):
        self.session = session
        self.checker = checker or ResourceAccessChecker(session)

    async def validate(self, principal: Principal, payload: Mapping[str, Any]) -> None:
        """Check reference fields in order, stopping at the first violation.

        Raises:
            AccessDenied: With a static reason naming the rejected field, or
                for a reference that is not a valid id
        """
        if principal.is_superadmin:
            return

        project_id = _reference(payload, "project_id")
        if project_id is not None and not await self.checker.can_access_project(
            principal, project_id
        ):
            raise AccessDenied(
                "Access denied: You cannot access this project.",
                DenialCode.CROSS_TENANT_REFERENCE,
            )

        firm_id = _reference(payload, "firm_id")
        if firm_id is not None and not await self.checker.check_access(principal, "firm", firm_id):
            raise AccessDenied(
                "Access denied: You cannot assign resources to another firm.",
                DenialCode.CROSS_TENANT_REFERENCE,
            )

        assigned_user_id = _reference(payload, "assigned_user_id")
        if assigned_user_id is not None and not await self._can_assign_user(
            principal, assigned_user_id, project_id
        ):
            raise AccessDenied(
                "Access denied: You cannot assign this user.",
                DenialCode.CROSS_TENANT_REFERENCE,
            )

        assigned_firm_id = _reference(payload, "assigned_firm_id")
        if (
            assigned_firm_id is not None
            and project_id is not None
            and not await graph.firm_on_project(self.session, project_id, assigned_firm_id)
        ):
            raise AccessDenied(
                "Access denied: Firm is not associated with this project.",
                DenialCode.CROSS_TENANT_REFERENCE,
            )

    async def _can_assign_user(
        self, principal: Principal, user_id: int, project_id: int | None
    ) -> bool:
        if await self.checker.can_manage_user(principal, user_id):
            return True
        if project_id is None:
            return False
        # Cross-firm assignment inside a shared project
        exists, firm_id = await graph.user_firm(self.session, user_id)
        if not exists or firm_id is None:
            return False
        return await graph.firm_on_project(self.session, project_id, firm_id)
