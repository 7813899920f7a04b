"""
FastAPI app factory for the tangent web service.

Creates and configures the FastAPI application with:
- REST API routers
- CORS middleware
- Service initialization
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..search.base import SearchProvider, TangentGenerator
from ..search.mock import MockSearchProvider, MockTangentGenerator
from .api import search, trail
from .models.api_models import HealthResponse

logger = logging.getLogger(__name__)


def create_app(
    db_path: str | Path,
    search_provider: SearchProvider | None = None,
    tangent_generator: TangentGenerator | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        db_path: Path to SQLite trail database
        search_provider: Search collaborator (defaults to fixture cards)
        tangent_generator: Tangent collaborator (defaults to fixture queries)

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info("Starting tangent service...")

        trail.init_trail_service(db_path)
        search.init_search(
            search_provider or MockSearchProvider(),
            tangent_generator or MockTangentGenerator(),
        )

        logger.info("Service ready")

        yield

        logger.info("Shutting down tangent service...")
        await trail.shutdown_trail_service()
        logger.info("Service stopped")

    app = FastAPI(
        title="Tangent",
        description="Exploration trail service: search, tangents and trail persistence",
        version="0.1.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    # CORS middleware (for development with separate frontend)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(search.router, prefix="/api", tags=["search"])
    app.include_router(trail.router, prefix="/api/trail", tags=["trail"])

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(ok=True)

    return app
