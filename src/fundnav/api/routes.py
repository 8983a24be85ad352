"""FastAPI route definitions for the fundnav API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

import fundnav
from fundnav.api.deps import get_store
from fundnav.api.schemas import (
    ErrorResponse,
    FundResponse,
    HealthResponse,
    NavHistoryResponse,
)
from fundnav.cache.store import CacheStore

router = APIRouter()

_UNREADY = {503: {"model": ErrorResponse, "description": "Directory not loaded yet"}}
_LOOKUP_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown scheme code"},
    **_UNREADY,
}


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(store: CacheStore = Depends(get_store)):
    """Cache readiness and basic statistics."""
    return HealthResponse(
        status="ok" if store.ready else "initializing",
        version=fundnav.__version__,
        ready=store.ready,
        funds=len(store.directory),
        cached_series=store.cached_series_count,
        last_refreshed=store.last_refreshed,
    )


# -- Funds --


@router.get("/search", response_model=list[FundResponse], responses=_UNREADY)
async def search_funds(
    q: str = Query("", description="Free-text fund name, scheme code, or ISIN"),
    store: CacheStore = Depends(get_store),
):
    """Fuzzy search funds, best match first."""
    return [FundResponse.from_descriptor(d) for d in store.search(q)]


@router.get("/mf/{scheme_code}", response_model=FundResponse, responses=_LOOKUP_ERRORS)
async def get_fund(scheme_code: int, store: CacheStore = Depends(get_store)):
    """Directory entry for one scheme code."""
    return FundResponse.from_descriptor(store.get_descriptor(scheme_code))


# -- NAV --


@router.get(
    "/nav/{scheme_code}",
    response_model=NavHistoryResponse | None,
    responses=_LOOKUP_ERRORS,
)
async def get_nav_history(scheme_code: int, store: CacheStore = Depends(get_store)):
    """Daily NAV history. Null when the upstream fetch failed; retry later."""
    series = await store.get_series(scheme_code)
    if series is None:
        return None
    return NavHistoryResponse.from_series(series)
