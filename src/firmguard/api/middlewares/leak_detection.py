"""Leak detection middleware (diagnostic).

Scans JSON responses sent to non-superadmin callers for references to other
firms. Findings are logged and audited; the response always goes out
unchanged.
"""

import json

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.firmguard.core.db.engine import get_engine
from src.firmguard.core.logging import get_logger
from src.firmguard.models import AuditAction
from src.firmguard.repositories import AuditLogRepository
from src.firmguard.services.audit_service import AuditService
from src.firmguard.tenancy.leaks import LeakFinding, find_firm_leaks
from src.firmguard.tenancy.principal import Principal

logger = get_logger(__name__)


class LeakDetectionMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, max_depth: int = 64):
        super().__init__(app)
        self.max_depth = max_depth

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        principal: Principal | None = getattr(request.state, "principal", None)
        if principal is None or principal.is_superadmin or principal.firm_id is None:
            return response
        if not response.headers.get("content-type", "").startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])  # type: ignore[attr-defined]
        rebuilt = Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
            background=response.background,
        )

        try:
            payload = json.loads(body)
        except ValueError:
            return rebuilt

        findings = find_firm_leaks(payload, principal.firm_id, self.max_depth)
        if findings:
            try:
                await self._report(request, principal, findings)
            except (SQLAlchemyError, OSError) as e:
                logger.warning("Leak report failed", error=str(e))
        return rebuilt

    async def _report(
        self, request: Request, principal: Principal, findings: list[LeakFinding]
    ) -> None:
        logger.warning(
            "Potential data leak detected",
            url=str(request.url),
            principal_id=principal.id,
            findings=len(findings),
        )
        async with AsyncSession(get_engine(), expire_on_commit=False) as session:
            audit = AuditService(AuditLogRepository(session), session, principal)
            await audit.log(
                AuditAction.POTENTIAL_DATA_LEAK,
                metadata={
                    "url": str(request.url),
                    "method": request.method,
                    "leaks": [
                        {"path": f.path, "key": f.key, "firm_id": f.firm_id} for f in findings[:20]
                    ],
                    "leak_count": len(findings),
                },
            )
