"""FastAPI application for the second-brain service."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..errors import SecondBrainError
from ..services import BrainService, create_brain_service
from .config import SecondBrainConfig
from .routes import router

# Global service instance (set during lifespan)
_brain_service: Optional[BrainService] = None

logger = logging.getLogger("secondbrain.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global _brain_service

    config: SecondBrainConfig = app.state.config

    # Validate config
    errors = config.validate()
    if errors:
        raise ValueError(f"Configuration errors: {errors}")

    logger.info("Starting second-brain service")

    _brain_service = create_brain_service(config)
    logger.info(
        f"Brain service initialized (documents: {config.db.path}, "
        f"vectors: {config.db.vector_provider}, embeddings: {config.embedding.provider})"
    )

    yield

    logger.info("Shutting down second-brain service")
    await _brain_service.close()
    _brain_service = None


def install_error_handlers(app: FastAPI) -> None:
    """Render every error as ``{"message": ...}`` with the right status."""

    @app.exception_handler(SecondBrainError)
    async def handle_service_error(request: Request, exc: SecondBrainError):
        if exc.status_code >= 500:
            logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"message": "Internal server error."})


def create_app(config: Optional[SecondBrainConfig] = None) -> FastAPI:
    """Create FastAPI application.

    Args:
        config: Service configuration. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if config is None:
        config = SecondBrainConfig.from_env()

    app = FastAPI(
        title="Second Brain",
        description="Save, tag and semantically search links to external media",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan and auth access
    app.state.config = config

    # The web frontend is the only expected browser origin
    origins = list(config.server.cors_origins)
    if config.server.frontend_url and config.server.frontend_url not in origins:
        origins.append(config.server.frontend_url)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)
    app.include_router(router)

    # Root endpoint
    @app.get("/")
    async def root():
        return {
            "service": "second-brain",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app


def run_server(
    config: Optional[SecondBrainConfig] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: str = "info",
):
    """Run the HTTP server.

    Args:
        config: Service configuration. If None, loads from environment.
        host: Override host from config.
        port: Override port from config.
        log_level: Logging level.
    """
    if config is None:
        config = SecondBrainConfig.from_env()

    # Ensure data directories exist
    if config.db.path != ":memory:":
        Path(config.db.path).parent.mkdir(parents=True, exist_ok=True)
    if config.db.vector_provider == "lancedb" and not config.db.vector_uri:
        Path(config.db.vector_path).mkdir(parents=True, exist_ok=True)

    app = create_app(config)

    uvicorn.run(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
        log_level=log_level,
    )
