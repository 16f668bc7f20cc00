"""Fake location source: samples and failures are fed in by tests."""

import asyncio
from collections.abc import AsyncIterator

from tracking.location.port import LocationSample, LocationSource, LocationSourceError


class FakeLocationSource(LocationSource):
    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self.watchers: list[str] = []

    def push(self, *samples: LocationSample) -> None:
        for sample in samples:
            self._queue.put_nowait(sample)

    def fail(self, reason: str = "Location permission denied") -> None:
        """Make the current watch raise; the next watch starts clean."""
        self._queue.put_nowait(LocationSourceError(reason))

    async def watch(self, driver_id: str) -> AsyncIterator[LocationSample]:
        self.watchers.append(driver_id)
        while True:
            item = await self._queue.get()
            if isinstance(item, LocationSourceError):
                raise item
            yield item
