"""
FastAPI application entry point.

Wires the review and health routers, the validation error handler and the
ModelManager lifecycle.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .models.common import ErrorResponse
from .routers import health, review
from .routers.health import API_VERSION
from .settings import ServerSettings, load_settings
from src.models.manager import ModelManager
from src.pipeline.review.types import ReviewValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the ModelManager once at startup. A missing provider key raises
    ConfigError here and stops the server from starting.
    """
    settings: ServerSettings = app.state.settings
    logger.info(f"Starting code review API (config={settings.config_path})")

    model_manager = ModelManager(config_path=settings.config_path)
    app.state.model_manager = model_manager
    logger.info("ModelManager initialized; API server ready to accept requests")

    async with model_manager.session():
        yield  # Server runs here

    logger.info("Shutting down code review API")
    app.state.model_manager = None


async def validation_error_handler(request: Request, exc: ReviewValidationError) -> JSONResponse:
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    content = ErrorResponse(success=False, error=exc.message).model_dump(exclude_none=True)
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(settings: Optional[ServerSettings] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    Tests pass their own settings and override get_model_manager.
    """
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Code Review API",
        description="Sends submitted source code to a generative model and returns a markdown review",
        version=API_VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings

    # Configure CORS middleware for browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ReviewValidationError, validation_error_handler)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(review.router, prefix="/ai", tags=["review"])

    @app.get("/")
    async def root():
        """Root endpoint with basic API information."""
        return {
            "name": "Code Review API",
            "version": API_VERSION,
            "status": "operational",
            "endpoints": {
                "review": "/ai/get-review",
                "health": "/health",
                "docs": "/docs",
            }
        }

    return app


# Create the FastAPI app instance
app = create_app()
