"""User endpoints - listing within the firm and role changes."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request, status

from src.firmguard.api.dependencies import AuditServiceDep, CurrentPrincipal, DBSession, UserRepo
from src.firmguard.api.guards import guard
from src.firmguard.authz.permissions import can_assign_role
from src.firmguard.core.exceptions import AccessDenied, DenialCode
from src.firmguard.models import AuditAction
from src.firmguard.models.base import utc_now
from src.firmguard.schemas.pagination import PaginatedResponse
from src.firmguard.schemas.user import RoleChangeRequest, UserRead
from src.firmguard.tenancy.principal import Principal

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    response_model=PaginatedResponse[UserRead],
    dependencies=guard("tenant.isolation", "permission:users.view.own_firm"),
)
async def list_users(
    repo: UserRepo,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int, Query(ge=1, le=100, description="Max items to return")] = 50,
) -> PaginatedResponse[UserRead]:
    users, next_cursor, has_more = await repo.list_page(cursor=cursor, limit=limit)
    return PaginatedResponse(
        items=[UserRead.model_validate(u) for u in users],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    dependencies=guard("tenant.isolation", "permission:users.change_role"),
    responses={
        403: {"description": "Role cannot be assigned by the caller"},
        404: {"description": "User not found"},
    },
)
async def change_user_role(
    user_id: int,
    body: RoleChangeRequest,
    request: Request,
    session: DBSession,
    principal: CurrentPrincipal,
    repo: UserRepo,
    audit_service: AuditServiceDep,
) -> UserRead:
    """Change a user's role.

    Only superadmins may grant superadmin or change a superadmin's role, and
    nobody but a superadmin may change their own role.
    """
    user = await repo.get_by_id(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )

    if not can_assign_role(principal, body.role, Principal.from_user(user)):
        error = AccessDenied(
            "Access denied: You cannot assign this role.", DenialCode.PERMISSION_DENIED
        )
        await audit_service.log_permission_denied(
            AuditAction.PERMISSION_DENIED,
            error.reason,
            {"url": str(request.url), "method": request.method, "target_role": body.role.value},
            ("user", user.id),
        )
        raise error

    old_role = user.role
    user.role = body.role.value
    user.updated_at = utc_now()
    try:
        await session.commit()
        await session.refresh(user)
    except Exception:
        await session.rollback()
        raise

    await audit_service.log(
        AuditAction.ROLE_CHANGE,
        ("user", user.id),
        {"old_role": old_role, "new_role": user.role},
        critical=True,
    )
    return UserRead.model_validate(user)
