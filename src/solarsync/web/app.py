"""FastAPI application exposing the sync triggers."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy import Engine

from solarsync import __version__
from solarsync.config.settings import Settings, get_settings
from solarsync.db.engine import create_engine, create_tables
from solarsync.sync.scheduler import SyncScheduler
from solarsync.vendors.registry import VendorRegistry, create_default_registry
from solarsync.web.routes import router

logger = structlog.get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    registry: VendorRegistry | None = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Application settings. Defaults to the environment.
        engine: Database engine. Defaults to one built from settings.
        registry: Vendor adapter registry. Defaults to the built-in adapters.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    engine = engine or create_engine(settings)
    registry = registry or create_default_registry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Solar Sync API", version=__version__)
        create_tables(engine)

        scheduler: SyncScheduler | None = None
        if settings.scheduler_enabled:
            scheduler = SyncScheduler(engine, settings, registry)
            await scheduler.start()

        yield

        logger.info("Shutting down Solar Sync API")
        if scheduler:
            await scheduler.stop()

    app = FastAPI(
        title="Solar Sync",
        description="Vendor plant and alert synchronization",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.registry = registry

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    app.include_router(router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
