"""Process-wide cache of the fund directory and lazily fetched NAV series.

State is held by an explicit ``CacheStore`` object that callers pass around;
nothing here is a module global. Shared collections are only ever replaced
whole:

- the directory and its search index live together in one immutable
  ``DirectorySnapshot`` and are swapped with a single assignment, so a
  reader never sees a directory paired with another directory's index;
- invalidation swaps the series map for a new empty dict.

Per-instrument series follow ``Absent -> Fetching -> Present``. A failed
fetch returns the entry to ``Absent`` so the next lookup retries.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from fundnav.cache.coalescer import SingleFlight
from fundnav.core.config import SearchConfig
from fundnav.core.exceptions import FundNavError, NotFound, SearchIndexUnready
from fundnav.core.models import (
    InstrumentDescriptor,
    InstrumentId,
    PriceSeries,
    RawSeries,
)
from fundnav.search.index import SearchIndex, TfidfSearchIndex
from fundnav.series.normalizer import SeriesNormalizer

logger = logging.getLogger(__name__)


class NavSource(Protocol):
    """What the store needs from the upstream adapter."""

    async def fetch_directory(self) -> list[InstrumentDescriptor]: ...

    async def fetch_raw_series(self, instrument_id: InstrumentId) -> RawSeries: ...


@dataclass(frozen=True)
class DirectorySnapshot:
    """A committed directory together with the index built from it."""

    descriptors: tuple[InstrumentDescriptor, ...]
    index: SearchIndex
    built_at: datetime
    by_id: Mapping[InstrumentId, InstrumentDescriptor] = field(repr=False)

    @classmethod
    def build(
        cls,
        descriptors: list[InstrumentDescriptor],
        index: SearchIndex,
    ) -> DirectorySnapshot:
        return cls(
            descriptors=tuple(descriptors),
            index=index,
            built_at=datetime.now(UTC),
            by_id={d.id: d for d in descriptors},
        )

    def __len__(self) -> int:
        return len(self.descriptors)


class CacheStore:
    """Directory snapshot, search index, and per-instrument series cache."""

    def __init__(
        self,
        source: NavSource,
        normalizer: SeriesNormalizer | None = None,
        search_config: SearchConfig | None = None,
    ) -> None:
        self._source = source
        self._normalizer = normalizer or SeriesNormalizer()
        self._search_config = search_config or SearchConfig()
        self._snapshot: DirectorySnapshot | None = None
        self._series: dict[InstrumentId, PriceSeries] = {}
        self._flight: SingleFlight[PriceSeries | None] = SingleFlight()

    # --- State ---

    @property
    def ready(self) -> bool:
        """True once a directory build has ever been committed."""
        return self._snapshot is not None

    @property
    def directory(self) -> tuple[InstrumentDescriptor, ...]:
        snapshot = self._snapshot
        return snapshot.descriptors if snapshot is not None else ()

    @property
    def last_refreshed(self) -> datetime | None:
        snapshot = self._snapshot
        return snapshot.built_at if snapshot is not None else None

    @property
    def cached_series_count(self) -> int:
        return len(self._series)

    def is_fetching(self, instrument_id: InstrumentId) -> bool:
        return self._flight.in_flight(instrument_id)

    # --- Refresh ---

    async def initialize(self) -> bool:
        """Run the first directory build. Failure leaves the store unready."""
        logger.info("Initializing fund directory")
        try:
            await self.refresh_directory()
        except FundNavError as e:
            logger.error("Initial directory build failed: %s", e)
            return False
        return True

    async def refresh_directory(self) -> DirectorySnapshot:
        """Fetch the directory, index it, and commit both atomically.

        Raises:
            SourceError: If the upstream fetch fails. The previous snapshot
                stays in place.
        """
        descriptors = await self._source.fetch_directory()
        index = await asyncio.to_thread(
            TfidfSearchIndex.build,
            descriptors,
            self._search_config.threshold,
            self._search_config.max_results,
        )
        snapshot = DirectorySnapshot.build(descriptors, index)
        self._snapshot = snapshot
        logger.info("Directory refreshed with %d funds", len(snapshot))
        return snapshot

    def invalidate_series(self) -> int:
        """Drop every cached series. Returns how many were dropped."""
        dropped = len(self._series)
        self._series = {}
        logger.info("Cleared %d cached NAV series", dropped)
        return dropped

    # --- Lookups ---

    def search(self, query: str) -> list[InstrumentDescriptor]:
        if len(query) < 1:
            return []
        return self._require_snapshot().index.query(query)

    def get_descriptor(self, instrument_id: InstrumentId) -> InstrumentDescriptor:
        descriptor = self._require_snapshot().by_id.get(instrument_id)
        if descriptor is None:
            raise NotFound(
                f"Instrument not found: {instrument_id}",
                context={"instrument_id": instrument_id},
            )
        return descriptor

    async def get_series(self, instrument_id: InstrumentId) -> PriceSeries | None:
        """Cached series, fetching it on a miss.

        Returns None when the fetch fails; the failure is logged and the
        next call retries.

        Raises:
            NotFound: ``instrument_id`` is not in the current directory.
            SearchIndexUnready: No directory has been built yet.
        """
        self.get_descriptor(instrument_id)

        cached = self._series.get(instrument_id)
        if cached is not None:
            return cached

        return await self._flight.do(
            instrument_id, lambda: self._fetch_series(instrument_id)
        )

    async def _fetch_series(self, instrument_id: InstrumentId) -> PriceSeries | None:
        try:
            raw = await self._source.fetch_raw_series(instrument_id)
            series = self._normalizer.normalize(instrument_id, raw)
        except FundNavError as e:
            logger.error("Error updating NAV for instrument %d: %s", instrument_id, e)
            return None

        self._series[instrument_id] = series
        logger.info(
            "Updated NAV for instrument %d with %d entries", instrument_id, len(series)
        )
        return series

    def _require_snapshot(self) -> DirectorySnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise SearchIndexUnready("Fund directory has not been loaded yet")
        return snapshot
