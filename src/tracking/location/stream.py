"""Driver location streaming with rate-limited write-through.

A ``LocationStream`` runs two tasks per order:

- the reader consumes the device source, drops inaccurate or out-of-order
  samples, publishes accepted samples to local observers and keeps only the
  newest one pending;
- the writer forwards the pending sample to the order record at most once
  per ``write_interval`` (leading edge: the first sample is written at once).

Source failures become ``LocationUnavailable`` signals and the reader
retries with exponential backoff. Writes only happen while the order is
out for delivery, and stop for good once the order is terminal.
"""

import asyncio
from collections.abc import AsyncIterator, Callable

import structlog

from tracking.config import get_settings
from tracking.geo import validate_coordinate
from tracking.location.port import LocationSample, LocationSource, LocationSourceError, LocationUnavailable
from tracking.order.order import TERMINAL_STATUSES, TRACKING_STATUSES
from tracking.store.port import ORDERS, DocumentStore, PreconditionFailed, StoreError
from tracking.utils.clock import to_iso, utc_now

logger = structlog.get_logger(__name__)

LocationUpdate = LocationSample | LocationUnavailable
Observer = Callable[[LocationUpdate], None]


class LocationStream:
    def __init__(
        self,
        source: LocationSource,
        store: DocumentStore,
        order_id: str,
        *,
        min_accuracy: float | None = None,
        write_interval: float | None = None,
        backoff_initial: float | None = None,
        backoff_max: float | None = None,
        start_timeout: float | None = None,
        queue_size: int = 16,
    ) -> None:
        settings = get_settings()
        self.source = source
        self.store = store
        self.order_id = order_id
        self.min_accuracy = min_accuracy if min_accuracy is not None else settings.min_location_accuracy_m
        self.write_interval = write_interval if write_interval is not None else settings.location_write_interval_s
        self.backoff_initial = (
            backoff_initial if backoff_initial is not None else settings.location_backoff_initial_s
        )
        self.backoff_max = backoff_max if backoff_max is not None else settings.location_backoff_max_s
        self.start_timeout = start_timeout if start_timeout is not None else settings.location_start_timeout_s
        self.queue_size = queue_size

        self.driver_id: str | None = None
        self.writes = 0
        self.dropped = 0
        self.failures = 0
        self.refused = False

        self._latest: LocationSample | None = None
        self._pending: LocationSample | None = None
        self._observers: list[Observer] = []
        self._update_queues: list[asyncio.Queue] = []
        self._wakeup: asyncio.Event | None = None
        self._first_signal: asyncio.Event | None = None
        self._reader: asyncio.Task | None = None
        self._writer: asyncio.Task | None = None

    @property
    def latest(self) -> LocationSample | None:
        """Newest accepted sample."""
        return self._latest

    @property
    def running(self) -> bool:
        return self._reader is not None

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    async def start(self, driver_id: str) -> None:
        """Start streaming for a driver; returns after the first sample or failure."""
        if self._reader is not None:
            return

        self.driver_id = driver_id
        self._wakeup = asyncio.Event()
        self._first_signal = asyncio.Event()
        self._reader = asyncio.create_task(self._read_loop(driver_id), name=f"location-reader-{self.order_id}")
        self._writer = asyncio.create_task(self._write_loop(), name=f"location-writer-{self.order_id}")
        logger.info("Location stream started", order_id=self.order_id, driver_id=driver_id)

        if self.start_timeout is None:
            await self._first_signal.wait()
            return
        try:
            await asyncio.wait_for(self._first_signal.wait(), timeout=self.start_timeout)
        except TimeoutError:
            logger.warning(
                "No location received yet, continuing in background",
                order_id=self.order_id,
                driver_id=driver_id,
                timeout=self.start_timeout,
            )

    async def stop(self) -> None:
        """Stop streaming. The newest accepted position is written before returning."""
        tasks = [task for task in (self._reader, self._writer) if task is not None]
        if not tasks:
            return
        self._reader = None
        self._writer = None

        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        # Newest sample still inside the throttle window
        pending, self._pending = self._pending, None
        if pending is not None and not self.refused:
            await self._write_through(pending)

        if self._first_signal is not None:
            self._first_signal.set()
        for queue in self._update_queues:
            self._offer(queue, None)
        logger.info("Location stream stopped", order_id=self.order_id, writes=self.writes)

    # -------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register a callback for samples and unavailability signals. Returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def updates(self) -> AsyncIterator[LocationUpdate]:
        """Iterate over accepted samples and signals until the stream stops.

        The buffer is bounded; a slow consumer loses the oldest updates.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._update_queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is None:
                    return
                yield item
        finally:
            self._update_queues.remove(queue)

    # -------------------------------------------------------------------
    # Reader
    # -------------------------------------------------------------------
    async def _read_loop(self, driver_id: str) -> None:
        delay = self.backoff_initial
        while True:
            try:
                async for sample in self.source.watch(driver_id):
                    delay = self.backoff_initial
                    self._accept(sample)
                reason = "Location source paused"
            except LocationSourceError as e:
                reason = e.reason
            except Exception as e:
                reason = str(e) or type(e).__name__

            self.failures += 1
            logger.warning(
                "Location unavailable, retrying",
                order_id=self.order_id,
                driver_id=driver_id,
                reason=reason,
                retry_in=delay,
            )
            self._publish(LocationUnavailable(driver_id=driver_id, reason=reason, retry_in=delay))
            self._first_signal.set()

            await asyncio.sleep(delay)
            delay = min(delay * 2, self.backoff_max)

    def _accept(self, sample: LocationSample) -> bool:
        if not self._is_usable(sample):
            self.dropped += 1
            return False

        self._latest = sample
        self._pending = sample
        self._wakeup.set()
        self._publish(sample)
        self._first_signal.set()
        return True

    def _is_usable(self, sample: LocationSample) -> bool:
        if sample.accuracy is None or sample.accuracy > self.min_accuracy:
            return False
        if not validate_coordinate(sample.lat, sample.lng):
            return False
        if self._latest is not None and sample.timestamp <= self._latest.timestamp:
            return False
        return True

    def _publish(self, item: LocationUpdate) -> None:
        for observer in list(self._observers):
            try:
                observer(item)
            except Exception as e:
                logger.error("Location observer failed", order_id=self.order_id, error=str(e))
        for queue in self._update_queues:
            self._offer(queue, item)

    @staticmethod
    def _offer(queue: asyncio.Queue, item) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(item)

    # -------------------------------------------------------------------
    # Writer
    # -------------------------------------------------------------------
    async def _write_loop(self) -> None:
        loop = asyncio.get_running_loop()
        last_write_at: float | None = None
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()

            if last_write_at is not None:
                wait = self.write_interval - (loop.time() - last_write_at)
                if wait > 0:
                    await asyncio.sleep(wait)

            sample, self._pending = self._pending, None
            if sample is None:
                continue

            last_write_at = loop.time()
            if not await self._write_through(sample):
                return

    async def _write_through(self, sample: LocationSample) -> bool:
        """Write one sample to the order. Returns False once writes are refused for good."""
        try:
            document = await self.store.get(ORDERS, self.order_id)
            if document is None:
                logger.warning("Order not found, location not written", order_id=self.order_id)
                return True

            status = document.get("status")
            if status in TERMINAL_STATUSES:
                return self._refuse(status)
            if status not in TRACKING_STATUSES:
                logger.debug("Order not out for delivery, location not written", order_id=self.order_id, status=status)
                return True

            await self.store.patch(
                ORDERS,
                self.order_id,
                {
                    "driver_lat": sample.lat,
                    "driver_lng": sample.lng,
                    "driver_accuracy": sample.accuracy,
                    "driver_location_at": to_iso(sample.timestamp),
                    "updated_at": to_iso(utc_now()),
                },
                expected={"status": status},
            )
        except PreconditionFailed as e:
            actual = e.actual.get("status")
            logger.info("Order status changed during location write", order_id=self.order_id, status=actual)
            if actual in TERMINAL_STATUSES:
                return self._refuse(actual)
            return True
        except StoreError as e:
            logger.warning("Location write failed", order_id=self.order_id, error=str(e))
            return True

        self.writes += 1
        return True

    def _refuse(self, status: str) -> bool:
        self.refused = True
        logger.info("Order is closed, location writes refused", order_id=self.order_id, status=status)
        return False
