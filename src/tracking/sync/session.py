"""Tracking session: everything one client runs while watching an order.

Combines the sync coordinator with the optional driver location stream and
route recomputation, and forwards genuine status changes to the
notification dispatcher. Closing the session tears all of it down; a
failure in one part does not keep the others alive.
"""

import asyncio

import structlog

from tracking.location.stream import LocationStream
from tracking.order.order import TERMINAL_STATUSES
from tracking.routing.planner import RouteEstimate, RoutePlanner
from tracking.store.port import DocumentStore
from tracking.sync.coordinator import OrderObserver, OrderSnapshot, StatusChanged, SyncCoordinator
from tracking.utils.logging import add_context

logger = structlog.get_logger(__name__)


class TrackingSession(OrderObserver):
    def __init__(
        self,
        store: DocumentStore,
        order_id: str,
        *,
        planner: RoutePlanner | None = None,
        dispatcher=None,
        location_stream: LocationStream | None = None,
        grace_period: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self.order_id = order_id
        self.planner = planner
        self.dispatcher = dispatcher
        self.location_stream = location_stream
        self.coordinator = SyncCoordinator(store, order_id, grace_period=grace_period, poll_interval=poll_interval)

        self.snapshot: OrderSnapshot | None = None
        self.estimate: RouteEstimate | None = None
        self.status_changes: list[StatusChanged] = []

        self._route_task: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._closed = False

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def open(self) -> None:
        add_context(order_id=self.order_id)
        self.coordinator.add_observer(self)
        await self.coordinator.start()

    async def start_location(self, driver_id: str) -> None:
        """Start streaming the driver's position into the order (driver clients only)."""
        if self.location_stream is None:
            raise ValueError("This session has no location stream")
        await self.location_stream.start(driver_id)

    # -------------------------------------------------------------------
    # OrderObserver
    # -------------------------------------------------------------------
    def on_snapshot(self, snapshot: OrderSnapshot) -> None:
        self.snapshot = snapshot
        if self.planner is None or self._closed:
            return
        if snapshot.status in TERMINAL_STATUSES:
            return

        origin = snapshot.driver_position
        destination = snapshot.destination
        if origin is None or destination is None:
            return

        # Only the newest position matters
        if self._route_task is not None and not self._route_task.done():
            self._route_task.cancel()
        self._route_task = asyncio.create_task(self._refresh_estimate(origin, destination))

    def on_status_changed(self, change: StatusChanged) -> None:
        self.status_changes.append(change)

        if change.previous_status is not None and self.dispatcher is not None:
            self.dispatcher.on_status_changed(change)

        if change.status in TERMINAL_STATUSES:
            if self.planner is not None:
                self.planner.forget(self.order_id)
            if self.location_stream is not None and self.location_stream.running:
                self._spawn(self.location_stream.stop())

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    async def _refresh_estimate(self, origin, destination) -> None:
        self.estimate = await self.planner.estimate(origin, destination, order_id=self.order_id)

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def close(self) -> None:
        """Cancel route work, stop the location stream and release the coordinator."""
        if self._closed:
            return
        self._closed = True

        if self._route_task is not None and not self._route_task.done():
            self._route_task.cancel()
            await asyncio.gather(self._route_task, return_exceptions=True)
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

        if self.location_stream is not None:
            try:
                await self.location_stream.stop()
            except Exception as e:
                logger.error("Failed to stop location stream", order_id=self.order_id, error=str(e))

        try:
            await self.coordinator.remove_observer(self)
            await self.coordinator.close()
        except Exception as e:
            logger.error("Failed to close sync coordinator", order_id=self.order_id, error=str(e))

        logger.info("Tracking session closed", order_id=self.order_id)
