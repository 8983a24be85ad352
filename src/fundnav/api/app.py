"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fundnav.api.deps import AppState
from fundnav.api.schemas import ErrorResponse
from fundnav.api.routes import router
from fundnav.cache.scheduler import build_scheduler
from fundnav.cache.store import CacheStore, NavSource
from fundnav.core.config import FundNavConfig, load_config
from fundnav.core.exceptions import FundNavError, NotFound, SearchIndexUnready
from fundnav.series.corrections import load_correction_table
from fundnav.series.normalizer import SeriesNormalizer
from fundnav.source.client import MfApiClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    config: FundNavConfig = app.state._pending_config or load_config()
    corrections = load_correction_table(config.corrections_path, config.corrections)

    client: MfApiClient | None = None
    source: NavSource | None = app.state._pending_source
    if source is None:
        client = MfApiClient(config.source)
        source = client

    store = CacheStore(source, SeriesNormalizer(corrections), config.search)
    await store.initialize()

    scheduler = build_scheduler(store, config.refresh)
    scheduler.start()
    app.state.app_state = AppState(config=config, store=store, scheduler=scheduler)

    yield

    await scheduler.stop()
    if client is not None:
        await client.close()


def create_app(
    config: FundNavConfig | None = None,
    source: NavSource | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``source`` replaces the upstream HTTP client, mainly for tests.
    """
    import fundnav

    app = FastAPI(
        title="fundnav API",
        description="Mutual fund directory search and daily NAV history",
        version=fundnav.__version__,
        lifespan=lifespan,
    )

    # Stash config so lifespan can retrieve it
    app.state._pending_config = config
    app.state._pending_source = source

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")

    @app.exception_handler(FundNavError)
    async def fundnav_exception_handler(request: Request, exc: FundNavError):
        status_map = {
            NotFound: 404,
            SearchIndexUnready: 503,
        }
        status = status_map.get(type(exc), 500)
        if status == 500:
            logger.error("Unhandled error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content=ErrorResponse(error=type(exc).__name__, detail=str(exc)).model_dump(),
        )

    return app
