"""
FastAPI application factory.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from contesthub import __version__
from contesthub.api.dependencies import ServiceContainer, build_services
from contesthub.api.routes import contests, health, history, webhooks
from contesthub.config.settings import get_settings
from contesthub.observability.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Contest API starting up")
    settings = get_settings()

    owned = app.state.services is None
    if owned:
        app.state.services = build_services(settings, use_mock=app.state.use_mock)
    services: ServiceContainer = app.state.services

    if settings.monitor_enabled:
        services.monitor.start_background()
        logger.info("Background monitor started", interval_seconds=settings.monitor_interval_seconds)

    yield

    logger.info("Contest API shutting down")
    if owned:
        await services.close()
        app.state.services = None
    else:
        await services.monitor.stop()


def create_app(services: ServiceContainer | None = None, use_mock: bool = False) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        services: Prebuilt services (built from settings on startup when None)
        use_mock: Build services with offline mock adapters

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    openapi_tags = [
        {"name": "health", "description": "Service and source health checks"},
        {"name": "contests", "description": "Aggregated contest listing and calendar export"},
        {"name": "webhooks", "description": "Webhook registration for new contests"},
        {"name": "history", "description": "Contest snapshots and analytics"},
    ]

    app = FastAPI(
        title="ContestHub API",
        description="""
Upcoming and ongoing programming contests aggregated from multiple platforms.

## Sources

A consolidated provider (CLIST) is tried first. When it is unavailable the
per-platform sources (Codeforces, LeetCode, CodeChef, AtCoder, HackerRank,
TopCoder, Kontests) are queried concurrently. The merged list is cached for
five minutes and filtered per request.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=openapi_tags,
    )
    app.state.services = services
    app.state.use_mock = use_mock

    # Add CORS middleware (origins from CORS_ORIGINS env var, comma-separated)
    cors_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Request logging and correlation ID middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )
        bind_context(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            response.headers["X-Request-ID"] = request_id

            logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            return response
        finally:
            clear_context()

    # Rate limiting (opt-in via RATE_LIMIT_ENABLED=true)
    if settings.rate_limit_enabled:
        from slowapi import _rate_limit_exceeded_handler
        from slowapi.errors import RateLimitExceeded

        from contesthub.api.rate_limit import limiter

        app.state.limiter = limiter
        app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(contests.router, tags=["contests"])
    app.include_router(webhooks.router, tags=["webhooks"])
    app.include_router(history.router, tags=["history"])

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "service": "ContestHub API",
            "version": __version__,
            "docs": "/docs",
        }

    return app
