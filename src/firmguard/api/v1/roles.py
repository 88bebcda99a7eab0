"""Role catalogue endpoint."""

from fastapi import APIRouter

from src.firmguard.api.dependencies import CurrentPrincipal
from src.firmguard.authz.permissions import assignable_roles, permissions_for
from src.firmguard.authz.roles import Role
from src.firmguard.schemas.user import RoleListResponse, RoleRead

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=RoleListResponse)
async def list_roles(principal: CurrentPrincipal) -> RoleListResponse:
    """List every role with its permissions, and the roles the caller may assign."""
    return RoleListResponse(
        roles=[
            RoleRead(
                value=role.value,
                label=role.label,
                description=role.description,
                permissions=sorted(p.value for p in permissions_for(role)),
            )
            for role in Role
        ],
        assignable=[role.value for role in assignable_roles(principal)],
    )
