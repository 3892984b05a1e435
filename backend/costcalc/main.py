"""
FastAPI application entry point.
Assembles the app with routers, middleware, lifespan handlers, and exception handlers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from costcalc.api.v1.router import api_router
from costcalc.core.config import settings
from costcalc.core.exceptions import setup_exception_handlers
from costcalc.core.logging import setup_logging
from costcalc.deps.di_container import create_container, get_health_controller, set_container

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    Initializes logging and the DI container, closes rate source sessions on shutdown.
    """
    # Startup
    setup_logging()

    container = create_container()
    app.state.container = container
    set_container(container)

    yield

    # Shutdown
    for source in (container.primary_rate_source(), container.fallback_rate_source()):
        await source.close()
    logger.info("Rate source sessions closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Project cost calculation and currency conversion API",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    # Add root-level health endpoint for convenience
    @app.get("/health", response_model=None, include_in_schema=False)
    async def root_health():
        """Root-level health check endpoint."""
        return await get_health_controller().get_health()

    # Global exception handler
    setup_exception_handlers(app)

    return app


app = create_app()
