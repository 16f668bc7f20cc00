"""Sync coordinator: one ordered view of an order per process.

Updates reach a client two ways: the store's change subscription (push) and
periodic reads (poll). The coordinator merges both into a single stream of
snapshots gated on the store revision, so observers never see a snapshot
older than one they already saw, and never see the same revision twice.

Polling only runs while push is silent: if no change arrives within the
grace period the coordinator polls at a fixed interval until push delivers
again.
"""

import asyncio
from dataclasses import dataclass

import structlog

from tracking.config import get_settings
from tracking.geo import Coordinate, validate_coordinate
from tracking.store.port import ORDERS, DocumentStore, StoreError
from tracking.utils.clock import parse_iso

logger = structlog.get_logger(__name__)

PUSH = "push"
POLL = "poll"


@dataclass(frozen=True)
class OrderSnapshot:
    order_id: str
    revision: int | None
    status: str
    document: dict
    source: str

    @property
    def driver_position(self) -> Coordinate | None:
        return _point(self.document.get("driver_lat"), self.document.get("driver_lng"))

    @property
    def destination(self) -> Coordinate | None:
        return _point(self.document.get("delivery_lat"), self.document.get("delivery_lng"))


@dataclass(frozen=True)
class StatusChanged:
    """The order's status differs from the last one this process emitted.

    ``previous_status`` is None for the first snapshot a coordinator sees.
    """

    order_id: str
    previous_status: str | None
    status: str
    revision: int | None
    snapshot: OrderSnapshot


class OrderObserver:
    """Base class for coordinator observers. Override what you need."""

    def on_snapshot(self, snapshot: OrderSnapshot) -> None:
        pass

    def on_status_changed(self, change: StatusChanged) -> None:
        pass


def _point(lat, lng) -> Coordinate | None:
    if lat is None or lng is None or not validate_coordinate(lat, lng):
        return None
    return Coordinate(lat=float(lat), lng=float(lng))


class SyncCoordinator:
    def __init__(
        self,
        store: DocumentStore,
        order_id: str,
        grace_period: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.order_id = order_id
        self.grace_period = grace_period if grace_period is not None else settings.push_grace_period_s
        self.poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_s

        self.mode = PUSH
        self.dropped = 0
        self.polls = 0
        self.push_failures = 0
        self.snapshot: OrderSnapshot | None = None

        self._observers: list[OrderObserver] = []
        self._last_revision: int | None = None
        self._last_updated_at = None
        self._last_status: str | None = None
        self._last_push_at: float | None = None
        self._subscription = None
        self._push_task: asyncio.Task | None = None
        self._watchdog_task: asyncio.Task | None = None
        self._started = False
        self._closed = False

    @property
    def last_revision(self) -> int | None:
        return self._last_revision

    @property
    def active(self) -> bool:
        return self._started and not self._closed

    # -------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------
    def add_observer(self, observer: OrderObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    async def remove_observer(self, observer: OrderObserver) -> None:
        """Detach an observer. The last one leaving closes the coordinator."""
        if observer in self._observers:
            self._observers.remove(observer)
        if not self._observers:
            await self.close()

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    async def start(self) -> None:
        if self._started:
            return
        self._started = True

        loop = asyncio.get_running_loop()
        self._subscription = self.store.subscribe(ORDERS, self.order_id)
        self._last_push_at = loop.time()
        self._push_task = asyncio.create_task(self._consume_push(), name=f"sync-push-{self.order_id}")
        self._watchdog_task = asyncio.create_task(self._watchdog(), name=f"sync-watchdog-{self.order_id}")
        logger.info("Sync coordinator started", order_id=self.order_id)

        await self.poll_once()

    async def close(self) -> None:
        """Release the subscription and cancel the poll timer."""
        if self._closed:
            return
        self._closed = True

        if self._subscription is not None:
            self._subscription.close()
        tasks = [task for task in (self._push_task, self._watchdog_task) if task is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._push_task = None
        self._watchdog_task = None
        logger.info("Sync coordinator closed", order_id=self.order_id, last_revision=self._last_revision)

    # -------------------------------------------------------------------
    # Delivery paths
    # -------------------------------------------------------------------
    async def poll_once(self) -> bool:
        self.polls += 1
        try:
            document = await self.store.get(ORDERS, self.order_id)
        except StoreError as e:
            logger.warning("Order poll failed", order_id=self.order_id, error=str(e))
            return False
        if document is None:
            logger.warning("Order not found while polling", order_id=self.order_id)
            return False
        return self.ingest(document, source=POLL)

    async def _consume_push(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            try:
                async for change in self._subscription:
                    self._last_push_at = loop.time()
                    if self.mode == POLL:
                        self.mode = PUSH
                        logger.info("Push channel resumed, polling stopped", order_id=self.order_id)
                    self.ingest(change.document, source=PUSH)
                return
            except Exception as e:
                self.push_failures += 1
                logger.warning(
                    "Push subscription failed, resubscribing",
                    order_id=self.order_id,
                    retry_in=self.poll_interval,
                    error=str(e),
                )
                self._subscription.close()

            await asyncio.sleep(self.poll_interval)
            self._subscription = self.store.subscribe(ORDERS, self.order_id)
            # Catch up on changes made while unsubscribed
            await self.poll_once()

    async def _watchdog(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            if self.mode == PUSH:
                silent_for = loop.time() - self._last_push_at
                if silent_for < self.grace_period:
                    await asyncio.sleep(self.grace_period - silent_for)
                    continue
                self.mode = POLL
                logger.warning(
                    "Push channel silent, falling back to polling",
                    order_id=self.order_id,
                    silent_for=round(silent_for, 3),
                )

            await self.poll_once()
            await asyncio.sleep(self.poll_interval)

    # -------------------------------------------------------------------
    # Merge point
    # -------------------------------------------------------------------
    def ingest(self, document: dict, source: str = PUSH) -> bool:
        """Offer a document to the coordinator. Returns True if it was emitted."""
        revision = document.get("revision")
        updated_at = parse_iso(document.get("updated_at"))

        if revision is not None:
            if self._last_revision is not None and revision <= self._last_revision:
                self.dropped += 1
                return False
        elif updated_at is None or (self._last_updated_at is not None and updated_at <= self._last_updated_at):
            self.dropped += 1
            return False

        self._last_revision = revision if revision is not None else self._last_revision
        self._last_updated_at = updated_at or self._last_updated_at

        snapshot = OrderSnapshot(
            order_id=self.order_id,
            revision=revision,
            status=document.get("status"),
            document=document,
            source=source,
        )
        self.snapshot = snapshot
        for observer in list(self._observers):
            self._call(observer.on_snapshot, snapshot)

        if snapshot.status != self._last_status:
            change = StatusChanged(
                order_id=self.order_id,
                previous_status=self._last_status,
                status=snapshot.status,
                revision=revision,
                snapshot=snapshot,
            )
            self._last_status = snapshot.status
            for observer in list(self._observers):
                self._call(observer.on_status_changed, change)
        return True

    def _call(self, callback, payload) -> None:
        try:
            callback(payload)
        except Exception as e:
            logger.error("Order observer failed", order_id=self.order_id, error=str(e))
