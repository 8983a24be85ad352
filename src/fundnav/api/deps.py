"""Dependency injection for FastAPI routes."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from fundnav.cache.scheduler import Scheduler
from fundnav.cache.store import CacheStore
from fundnav.core.config import FundNavConfig


@dataclass
class AppState:
    """Shared application state, attached to app.state during lifespan."""

    config: FundNavConfig
    store: CacheStore
    scheduler: Scheduler


def get_store(request: Request) -> CacheStore:
    """Dependency: retrieve the cache store."""
    return request.app.state.app_state.store
