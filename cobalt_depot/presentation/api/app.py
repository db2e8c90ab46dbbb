"""
FastAPI application factory and configuration.

This module creates and configures the FastAPI application with
proper middleware, error handling, and route registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ...application.container import Container, IContainer
from ...application.startup import ApplicationStartup
from ...core.exceptions import DepotError, InternalError
from ...infrastructure.config.models import ApplicationConfig
from .middleware import ErrorHandlerMiddleware, RequestContextMiddleware, SecurityMiddleware
from .routers import files, health, upload

logger = logging.getLogger(__name__)

EXPOSED_HEADERS = [
    "Location",
    "Upload-Offset",
    "Upload-Length",
    "Upload-Metadata",
    "Upload-Expires",
    "Tus-Resumable",
    "Tus-Version",
    "Tus-Max-Size",
    "Tus-Extension",
    "Content-Disposition",
    "X-Request-ID",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Starts and stops components when the app owns its startup, as in
    auto-reload mode; otherwise the CLI process manages them.
    """
    startup: Optional[ApplicationStartup] = app.state.startup
    logger.info("Application starting up...")

    if startup is not None:
        if not startup.configured:
            await startup.configure_services(app.state.config)
        await startup.start_application()
    try:
        yield
    finally:
        if startup is not None:
            await startup.stop_application()
        logger.info("Application shutting down...")


def create_app(
    container: IContainer,
    config: ApplicationConfig,
    startup: Optional[ApplicationStartup] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Service container holding configured components
        config: Application configuration
        startup: Startup manager to drive from the app lifespan

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=config.name,
        version=config.version,
        description="Resumable file upload server speaking the tus protocol",
        debug=config.debug,
        lifespan=lifespan
    )

    app.state.container = container
    app.state.config = config
    app.state.startup = startup

    _configure_middleware(app, config)
    _register_exception_handlers(app, config)
    _register_routes(app, config)

    logger.info(f"FastAPI application created: {config.name} v{config.version}")
    return app


def create_app_from_config() -> FastAPI:
    """
    Create app from configuration (for uvicorn reload).

    Components are configured and started by the app lifespan.
    """
    from ...infrastructure.config.loader import ConfigLoader

    config_loader = ConfigLoader()
    config = config_loader.load_config("config.yaml")

    container = Container()
    startup = ApplicationStartup(container)

    return create_app(container, config, startup)


def _configure_middleware(app: FastAPI, config: ApplicationConfig) -> None:
    """Configure application middleware."""

    app.add_middleware(SecurityMiddleware, config=config.security)

    app.add_middleware(RequestContextMiddleware, access_log=config.server.access_log)

    app.add_middleware(ErrorHandlerMiddleware)

    # Browser tus clients read the protocol headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )

    logger.debug("Middleware configured")


def _register_exception_handlers(app: FastAPI, config: ApplicationConfig) -> None:
    """Map domain errors to JSON error responses."""
    upload_path = f"{config.server.api_prefix}/upload"

    @app.exception_handler(DepotError)
    async def depot_error_handler(request: Request, exc: DepotError) -> JSONResponse:
        if isinstance(exc, InternalError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.debug(f"{request.method} {request.url.path} rejected: {exc.message}")

        headers = {}
        if request.url.path.startswith(upload_path):
            headers["Tus-Resumable"] = upload.TUS_RESUMABLE

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=headers
        )


def _register_routes(app: FastAPI, config: ApplicationConfig) -> None:
    """Register API routes."""
    prefix = config.server.api_prefix

    app.include_router(
        upload.router,
        prefix=prefix,
        tags=["upload"]
    )

    app.include_router(
        files.router,
        prefix=prefix,
        tags=["files"]
    )

    app.include_router(
        health.router,
        prefix=f"{prefix}/health",
        tags=["health"]
    )

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with basic application information."""
        return {
            "name": app.title,
            "version": app.version,
            "status": "running",
            "docs_url": "/docs",
            "health_url": f"{prefix}/health"
        }

    logger.debug("Routes registered")
