"""Request context middleware - captures request metadata for audit logging."""

from asgi_correlation_id import correlation_id
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.firmguard.core.request_context import (
    clear_request_context,
    get_client_ip,
    set_request_context,
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets IP address, user agent, URL, method and request ID for AuditService.

    Context is cleared after request processing.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        clear_request_context()
        try:
            forwarded_for = request.headers.get("x-forwarded-for")
            client_host = request.client.host if request.client else None
            set_request_context(
                ip_address=get_client_ip(forwarded_for, client_host),
                user_agent=request.headers.get("user-agent"),
                request_id=correlation_id.get(),
                url=str(request.url),
                method=request.method,
            )
            return await call_next(request)
        finally:
            clear_request_context()
