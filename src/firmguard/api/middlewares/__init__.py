"""Application middlewares."""

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.firmguard.core.config import Settings

from .leak_detection import LeakDetectionMiddleware
from .logging_context import logging_context_middleware
from .request_context import RequestContextMiddleware

__all__ = [
    "setup_middlewares",
    "LeakDetectionMiddleware",
    "RequestContextMiddleware",
    "logging_context_middleware",
]


def setup_middlewares(app: FastAPI, settings: Settings) -> None:
    """Configure all application middlewares.

    Middleware added last runs first on the request.
    """
    # Leak detection - innermost, sees the response the route produced
    if settings.leak_detection_enabled:
        app.add_middleware(LeakDetectionMiddleware, max_depth=settings.leak_detection_max_depth)

    # Request context - metadata for audit entries
    app.add_middleware(RequestContextMiddleware)

    # Logging context - binds request_id to structlog context
    @app.middleware("http")
    async def _logging_context(request, call_next):  # type: ignore[no-untyped-def]
        return await logging_context_middleware(request, call_next)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    # Correlation ID - outermost, generates/propagates X-Request-ID
    app.add_middleware(CorrelationIdMiddleware)
