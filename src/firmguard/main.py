import secrets
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.firmguard.api.middlewares import setup_middlewares
from src.firmguard.api.v1.router import api_router
from src.firmguard.authz.permissions import validate_role_permissions
from src.firmguard.core.config import Settings, get_settings
from src.firmguard.core.db import dispose_engine, get_engine, get_session
from src.firmguard.core.exceptions import ConfigurationError, setup_exception_handlers
from src.firmguard.core.logging import get_logger, setup_logging
from src.firmguard.models import AuditAction
from src.firmguard.repositories import AuditLogRepository
from src.firmguard.services.audit_service import AuditService
from src.firmguard.tenancy.scope import get_tenant_scope

logger = get_logger(__name__)


async def check_tenant_scopes(settings: Settings) -> None:
    """Startup self-check of the scope registry.

    Fatal outside production. In production a misconfigured model is
    already fail-closed at query time, so the gap is raised as an alert
    instead of taking the service down.
    """
    problems = get_tenant_scope().registry.problems()
    if not problems:
        return
    if not settings.is_production:
        raise ConfigurationError("; ".join(problems))

    logger.critical("Tenant scope misconfigured", problems=problems)
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        audit = AuditService(AuditLogRepository(session), session)
        await audit.log(AuditAction.MISSING_TENANT_SCOPE, metadata={"problems": problems})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    validate_role_permissions()
    await check_tenant_scopes(settings)

    yield

    logger.info("Closing connections...")
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "auth", "description": "Authentication"},
    {"name": "projects", "description": "Projects visible to the caller's firm"},
    {"name": "tasks", "description": "Project tasks"},
    {"name": "documents", "description": "Document metadata"},
    {"name": "users", "description": "Users of the caller's firm and role changes"},
    {"name": "roles", "description": "Role catalogue"},
    {"name": "audit", "description": "Superadmin audit trail"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Firm-scoped multi-tenant project API",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        openapi_url="/openapi.json" if settings.enable_openapi else None,
        lifespan=lifespan,
    )

    # Exception handlers include request_id in error responses
    setup_exception_handlers(app)

    setup_middlewares(app, settings)

    app.include_router(api_router)

    # Prometheus metrics instrumentation
    instrumentator = Instrumentator().instrument(app)

    # Protect /metrics endpoint if API key is configured
    if settings.metrics_api_key:
        api_key_header = APIKeyHeader(name="X-Metrics-Key", auto_error=False)

        async def verify_metrics_key(api_key: str | None = Depends(api_key_header)) -> None:
            if (
                api_key is None
                or settings.metrics_api_key is None
                or not secrets.compare_digest(api_key, settings.metrics_api_key)
            ):
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Invalid or missing metrics API key",
                )

        instrumentator.expose(app, endpoint="/metrics", dependencies=[Depends(verify_metrics_key)])
    else:
        instrumentator.expose(app, endpoint="/metrics")

    @app.get("/health")
    async def health() -> JSONResponse:
        """Health check with database validation."""
        health_status: dict[str, Any] = {"status": "healthy", "database": "unknown"}
        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
            health_status["database"] = "healthy"
        except (SQLAlchemyError, OSError) as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()
