"""FastAPI server for the catalog bridge.

Main entry point for the read-only HTTP surface.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import catalog, health
from connectors import create_client
from connectors.governance_catalog import build_registry
from core import __version__
from core.config import load_config
from core.mapping.repository import CatalogRepository
from core.observability.logging import get_logger
from core.sync.window import ChangeTracker


logger = get_logger(__name__)


def _attach(app: FastAPI, repository: CatalogRepository) -> None:
    app.state.repository = repository
    app.state.tracker = ChangeTracker(repository)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    owned = app.state.repository is None
    if owned:
        config = load_config()
        _attach(app, CatalogRepository(create_client(config), build_registry(config)))
    logger.info(
        "Catalog bridge API starting up",
        extra_fields={"catalog_client": app.state.repository.client.client_name},
    )

    yield

    # Shutdown
    if owned:
        await app.state.repository.client.close()
    logger.info("Catalog bridge API shutting down")


def create_app(repository: Optional[CatalogRepository] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        repository: Repository to serve; built from the environment at startup when omitted
    """
    app = FastAPI(
        title="Catalog Bridge API",
        description="Canonical metadata view, search and change listing over an external catalog",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.repository = None
    if repository is not None:
        _attach(app, repository)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(catalog.router, tags=["Catalog"])

    return app


# Default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
