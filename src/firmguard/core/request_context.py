"""Request metadata context using contextvars.

Stores request metadata (IP address, user agent, URL, method) for use by
AuditService. The caller's identity is never stored here; the Principal is
passed explicitly through every authorization call.
"""

from contextvars import ContextVar
from dataclasses import dataclass

_request_context: ContextVar["RequestContext | None"] = ContextVar(
    "request_context", default=None
)


@dataclass(frozen=True)
class RequestContext:
    """Immutable metadata for the current request."""

    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    url: str | None = None
    method: str | None = None


def set_request_context(
    ip_address: str | None = None,
    user_agent: str | None = None,
    request_id: str | None = None,
    url: str | None = None,
    method: str | None = None,
) -> None:
    """Set request context for the current request."""
    ctx = RequestContext(
        ip_address=ip_address,
        user_agent=user_agent[:500] if user_agent and len(user_agent) > 500 else user_agent,
        request_id=request_id,
        url=url,
        method=method,
    )
    _request_context.set(ctx)


def get_request_context() -> RequestContext | None:
    """Get the current request context."""
    return _request_context.get()


def clear_request_context() -> None:
    """Clear the request context."""
    _request_context.set(None)


def get_client_ip(forwarded_for: str | None, client_host: str | None) -> str | None:
    """Extract client IP from X-Forwarded-For header or client host.

    Args:
        forwarded_for: Value of X-Forwarded-For header (may contain multiple IPs)
        client_host: Direct client host from the connection

    Returns:
        The client IP address (first IP from X-Forwarded-For, or client host)
    """
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return client_host
