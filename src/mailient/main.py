"""FastAPI application factory and entry point.

Creates the Mailient scheduling API with structured logging, request and
Prometheus middleware, CORS, optional Sentry, domain error handlers and the
v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse, Response

from src.mailient.api.middleware import LoggingMiddleware
from src.mailient.api.v1.router import router as v1_router
from src.mailient.config import Environment, get_settings
from src.mailient.core.errors import ProviderError, ValidationError
from src.mailient.core.logging import configure_structlog
from src.mailient.core.monitoring import MetricsMiddleware, get_metrics_response, init_sentry

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging and Sentry on startup."""
    settings = get_settings()
    configure_structlog(
        level=settings.LOG_LEVEL,
        json_logs=settings.ENVIRONMENT == Environment.production,
    )

    if settings.SENTRY_DSN:
        init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT.value)

    logger.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        default_provider=settings.DEFAULT_MEETING_PROVIDER,
        model_count=len(settings.SCHEDULING_MODELS),
    )
    yield
    logger.info("app.stopped")


# ── Exception Handlers ───────────────────────────────────────────────────────


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_request", "detail": str(exc)},
    )


async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    logger.warning(
        "provider_error",
        path=request.url.path,
        provider=exc.provider,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "provider_error", "provider": exc.provider, "detail": exc.message},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Mailient Scheduling API",
        version="0.1.0",
        description="Meeting scheduling across Google Meet and Zoom with AI assistance",
        lifespan=lifespan,
    )

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)

    # Middleware is added in reverse order (last added = outermost)

    # CORS middleware
    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
