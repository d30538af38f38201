from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint

from src.dirbuilder.api.v1.router import api_router
from src.dirbuilder.core.config import get_settings
from src.dirbuilder.core.db import dispose_engine, get_session_factory, init_models
from src.dirbuilder.core.exceptions import setup_exception_handlers
from src.dirbuilder.core.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from src.dirbuilder.core.migrations import run_migrations_async
from src.dirbuilder.provisioning import ProvisioningService, build_provisioning_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    if getattr(app.state, "provisioning", None) is None:
        if settings.database_auto_create:
            await init_models()
        else:
            await run_migrations_async()
        app.state.provisioning = build_provisioning_service(settings, get_session_factory())

    yield

    # Drain running sagas before closing the database they write to
    service: ProvisioningService = app.state.provisioning
    grace_period = settings.shutdown_grace_period
    logger.info(
        f"Shutdown initiated, waiting for {service.launcher.in_flight_count} provisioning jobs..."
    )
    drained = await service.shutdown(timeout=grace_period)
    if not drained:
        logger.warning(f"Shutdown timeout after {grace_period}s - remaining jobs marked failed")

    logger.info("Closing connections...")
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "publishing", "description": "Directory publishing and provisioning jobs"},
]


def create_app(provisioning: ProvisioningService | None = None) -> FastAPI:
    """Build the application.

    Args:
        provisioning: Pre-built provisioning service (tests). When None, the
            lifespan builds a database-backed one at startup.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Directory builder API with background provisioning",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.state.provisioning = provisioning

    setup_exception_handlers(app)

    # Add correlation ID middleware first (outermost middleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    @app.middleware("http")
    async def logging_context_middleware(
        request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Bind request_id to log context for all requests."""
        clear_request_context()
        bind_request_context(correlation_id.get())
        try:
            response = await call_next(request)
            return response
        finally:
            clear_request_context()

    app.include_router(api_router)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Health check: job store reachability and in-flight saga count."""
        service: ProvisioningService | None = app.state.provisioning
        if service is None:
            return JSONResponse(content={"status": "starting"}, status_code=503)

        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": "unknown",
            "in_flight_jobs": service.launcher.in_flight_count,
        }
        if service.launcher.is_closed:
            health_status["status"] = "draining"

        try:
            await service.store.ping()
            health_status["database"] = "healthy"
        except Exception as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    return app


app = create_app()
