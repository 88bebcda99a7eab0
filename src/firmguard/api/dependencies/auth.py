"""Authentication dependencies - resolve the Principal for a request."""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlmodel import select

from src.firmguard.api.dependencies.db import DBSession
from src.firmguard.core.exceptions import Unauthenticated
from src.firmguard.core.logging import bind_principal_context
from src.firmguard.core.security import decode_token
from src.firmguard.models import User
from src.firmguard.tenancy.principal import Principal


async def get_current_principal(
    request: Request,
    session: DBSession,
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Validate the bearer token and build the caller's Principal.

    The Principal is also placed on ``request.state`` so the leak detection
    middleware, which runs outside the dependency graph, can read it.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated()

    payload = decode_token(authorization[7:])
    if payload is None or payload.get("type") != "access":
        raise Unauthenticated("Invalid or expired token")

    try:
        user_id = int(payload.get("sub", ""))
    except ValueError as e:
        raise Unauthenticated("Invalid token payload") from e

    # Identity lookup happens before any principal exists, so it is unscoped
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise Unauthenticated("User not found or inactive")

    principal = Principal.from_user(user)
    if not principal.is_active:
        raise Unauthenticated("User not found or inactive")
    request.state.principal = principal
    bind_principal_context(principal.id, principal.firm_id, principal.is_superadmin, principal.email)
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
