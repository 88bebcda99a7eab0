"""Authentication endpoints."""

from fastapi import APIRouter
from sqlmodel import select

from src.firmguard.api.dependencies import AnonymousAuditServiceDep, DBSession
from src.firmguard.core.exceptions import Unauthenticated
from src.firmguard.core.logging import get_logger
from src.firmguard.core.security import create_access_token, verify_password
from src.firmguard.models import AuditAction, User
from src.firmguard.schemas.auth import LoginRequest, LoginResponse
from src.firmguard.tenancy.principal import Principal

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        200: {"description": "Access token issued"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(
    request: LoginRequest,
    session: DBSession,
    audit_service: AnonymousAuditServiceDep,
) -> LoginResponse:
    """Exchange email and password for a bearer access token."""
    result = await session.execute(select(User).where(User.email == request.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(request.password, user.hashed_password):
        raise Unauthenticated("Invalid email or password")
    if not user.is_active:
        raise Unauthenticated("User account is inactive")

    principal = Principal.from_user(user)
    await audit_service.for_principal(principal).log(AuditAction.USER_LOGIN, ("user", user.id))
    logger.info("User logged in", principal_id=principal.id, firm_id=principal.firm_id)

    return LoginResponse(access_token=create_access_token(principal.id))
