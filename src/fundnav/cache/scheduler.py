"""Interval-driven background jobs for directory rebuild and series invalidation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fundnav.cache.store import CacheStore
from fundnav.core.config import RefreshConfig

logger = logging.getLogger(__name__)

DIRECTORY_REBUILD = "directory-rebuild"
SERIES_INVALIDATION = "series-invalidation"


@dataclass(frozen=True)
class ScheduledJob:
    name: str
    interval: float  # seconds
    func: Callable[[], Awaitable[object]]


class Scheduler:
    """Registry of ``(interval, job)`` pairs run by asyncio tickers.

    Each tick fires its job without waiting for it. A job whose previous run
    is still active when its tick fires is skipped, not queued. Jobs can be
    run directly through :meth:`run_job`, which applies the same guard.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, ScheduledJob] = {}
        self._active: set[str] = set()
        self._tickers: list[asyncio.Task] = []
        self._runs: set[asyncio.Task] = set()

    def register(
        self,
        name: str,
        interval: float,
        func: Callable[[], Awaitable[object]],
    ) -> ScheduledJob:
        if name in self._jobs:
            raise ValueError(f"Job already registered: {name}")
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        job = ScheduledJob(name=name, interval=interval, func=func)
        self._jobs[name] = job
        return job

    @property
    def jobs(self) -> dict[str, ScheduledJob]:
        return dict(self._jobs)

    @property
    def running(self) -> bool:
        return bool(self._tickers)

    def is_active(self, name: str) -> bool:
        return name in self._active

    async def run_job(self, name: str) -> bool:
        """Run a job now. Returns False if skipped because it is already running.

        Job failures are logged and swallowed; the next tick tries again.
        """
        job = self._jobs[name]
        if name in self._active:
            logger.info("Skipping %s: previous run still active", name)
            return False

        self._active.add(name)
        try:
            logger.info("Running job %s", name)
            await job.func()
            logger.info("Job %s complete", name)
        except Exception:
            logger.exception("Job %s failed", name)
        finally:
            self._active.discard(name)
        return True

    def start(self) -> None:
        """Spawn one ticker task per registered job."""
        if self._tickers:
            return
        for job in self._jobs.values():
            self._tickers.append(
                asyncio.create_task(self._tick(job), name=f"ticker:{job.name}")
            )
        logger.info("Scheduler started with %d jobs", len(self._tickers))

    async def stop(self) -> None:
        """Cancel tickers and any job runs still in progress."""
        tasks = [*self._tickers, *self._runs]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tickers.clear()
        self._runs.clear()

    async def _tick(self, job: ScheduledJob) -> None:
        while True:
            await asyncio.sleep(job.interval)
            run = asyncio.create_task(self.run_job(job.name), name=f"run:{job.name}")
            self._runs.add(run)
            run.add_done_callback(self._runs.discard)


def build_scheduler(store: CacheStore, config: RefreshConfig) -> Scheduler:
    """Scheduler with the directory rebuild and series invalidation jobs."""
    scheduler = Scheduler()
    scheduler.register(DIRECTORY_REBUILD, config.directory_interval, store.refresh_directory)

    async def invalidate() -> None:
        store.invalidate_series()

    scheduler.register(SERIES_INVALIDATION, config.series_interval, invalidate)
    return scheduler
