"""Single-flight request coalescing for asyncio."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """At most one in-flight operation per key.

    The first caller for a key starts the operation as a task; callers that
    arrive while it runs await the same task. The registration is removed
    the moment the task settles, success or failure, so the next call after
    that starts a fresh operation. Waiters are shielded: cancelling one
    caller never cancels the shared operation.
    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Task[T]] = {}

    async def do(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._run(key, factory))
            self._inflight[key] = task
        else:
            logger.debug("Joining in-flight operation for %r", key)
        return await asyncio.shield(task)

    async def _run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            self._inflight.pop(key, None)

    def in_flight(self, key: Hashable) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)
