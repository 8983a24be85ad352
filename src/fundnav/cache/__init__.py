"""In-memory cache: directory snapshot, lazy NAV series, refresh jobs."""

from fundnav.cache.coalescer import SingleFlight
from fundnav.cache.scheduler import (
    DIRECTORY_REBUILD,
    SERIES_INVALIDATION,
    ScheduledJob,
    Scheduler,
    build_scheduler,
)
from fundnav.cache.store import CacheStore, DirectorySnapshot, NavSource

__all__ = [
    "CacheStore",
    "DirectorySnapshot",
    "NavSource",
    "SingleFlight",
    "ScheduledJob",
    "Scheduler",
    "build_scheduler",
    "DIRECTORY_REBUILD",
    "SERIES_INVALIDATION",
]
