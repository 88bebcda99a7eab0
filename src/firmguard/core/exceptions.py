"""Authorization error taxonomy and exception handlers with request_id in responses."""

from enum import StrEnum

from asgi_correlation_id import correlation_id
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.firmguard.core.config import get_settings
from src.firmguard.core.logging import get_logger

logger = get_logger(__name__)


class DenialCode(StrEnum):
    """Stable machine-readable denial reasons returned next to the message."""

    UNAUTHENTICATED = "unauthenticated"
    MISSING_TENANT = "missing_tenant"
    ACCESS_DENIED = "access_denied"
    PERMISSION_DENIED = "permission_denied"
    ROLE_DENIED = "role_denied"
    SUPERADMIN_REQUIRED = "superadmin_required"
    CROSS_TENANT_REFERENCE = "cross_tenant_reference"


class AuthorizationError(Exception):
    """Base class for decisions that stop a request before the handler runs."""

    status_code: int = status.HTTP_403_FORBIDDEN
    default_code: DenialCode = DenialCode.ACCESS_DENIED

    def __init__(self, reason: str, code: DenialCode | None = None):
        super().__init__(reason)
        self.reason = reason
        self.code = code or self.default_code


class Unauthenticated(AuthorizationError):
    """No principal could be resolved for the request."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = DenialCode.UNAUTHENTICATED

    def __init__(self, reason: str = "Authentication required"):
        super().__init__(reason)


class MissingTenant(AuthorizationError):
    """Non-superadmin principal without a firm. Fixed only by manual assignment."""

    default_code = DenialCode.MISSING_TENANT

    def __init__(self, reason: str = "Access denied: No firm assigned to your account."):
        super().__init__(reason)


class AccessDenied(AuthorizationError):
    """A checker, validator or pipeline stage rejected the request."""


class ConfigurationError(Exception):
    """Tenant scoping or role permissions are misconfigured."""


class AuditWriteError(Exception):
    """A critical audit entry could not be persisted."""


def setup_exception_handlers(app: FastAPI) -> None:
    """Configure exception handlers that include request_id in responses."""

    @app.exception_handler(AuthorizationError)
    async def authorization_exception_handler(
        request: Request, exc: AuthorizationError
    ) -> JSONResponse:
        content: dict[str, str | None] = {
            "detail": exc.reason,
            "code": exc.code.value,
            "request_id": correlation_id.get(),
        }
        if isinstance(exc, Unauthenticated):
            content["login_url"] = get_settings().login_url
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def starlette_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "request_id": correlation_id.get(),
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = correlation_id.get()
        logger.exception(
            "Unhandled exception",
            exc_info=exc,
            request_id=request_id,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
