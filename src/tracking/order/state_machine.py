"""Order state machine: the single authority for status changes.

Every status write goes through ``request_transition``: the order is read,
the transition validated against the table and the new status written with
a compare-and-set on the status that was read. A concurrent writer that got
there first turns the write into a ``ConcurrentConflict``; nothing is
overwritten.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError

from tracking.order.errors import ConcurrentConflict
from tracking.order.events import OrderStatusChanged
from tracking.order.order import Order, can_transition, parse_status
from tracking.store.port import ORDERS, DocumentStore, PreconditionFailed

logger = structlog.get_logger(__name__)

TransitionListener = Callable[[OrderStatusChanged], None]


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition request. ``event`` is None for a no-op."""

    order: Order
    event: OrderStatusChanged | None


async def load_order(store: DocumentStore, order_id: str) -> Order:
    document = await store.get(ORDERS, order_id)
    if document is None:
        raise ObjectNotFoundError(f"Order with id {order_id} does not exist")
    return Order.from_document(document)


class OrderStateMachine:
    def __init__(self, store: DocumentStore, listeners: Iterable[TransitionListener] = ()) -> None:
        self.store = store
        self.listeners: list[TransitionListener] = list(listeners)

    def add_listener(self, listener: TransitionListener) -> None:
        self.listeners.append(listener)

    @staticmethod
    def can_transition(current_status, target_status) -> bool:
        return can_transition(current_status, target_status)

    async def request_transition(
        self,
        order_id: str,
        target_status,
        actor,
        metadata: dict | None = None,
    ) -> TransitionResult:
        """Validate and apply a status change.

        Raises:
            ObjectNotFoundError: the order does not exist
            IllegalTransition: target not reachable from the current status
            ValidationError: required metadata missing (recipient name on ``received``)
            ConcurrentConflict: the status changed between read and write
        """
        metadata = metadata or {}
        target = parse_status(target_status)

        order = await load_order(self.store, order_id)
        expected_status = order.status

        event = order.transition_to(
            target,
            actor,
            recipient_name=metadata.get("recipient_name"),
            delivery_remarks=metadata.get("delivery_remarks"),
        )
        if event is None:
            logger.debug("Order already in requested status", order_id=order_id, status=expected_status)
            return TransitionResult(order=order, event=None)

        try:
            document = await self.store.patch(
                ORDERS,
                order_id,
                order.transition_patch(),
                expected={"status": expected_status},
            )
        except PreconditionFailed as e:
            actual_status = e.actual.get("status")
            logger.warning(
                "Order status changed concurrently",
                order_id=order_id,
                expected_status=expected_status,
                actual_status=actual_status,
                target_status=target.value,
            )
            raise ConcurrentConflict(order_id, expected_status, actual_status, target.value) from e

        order.revision = document["revision"]
        logger.info(
            "Order status changed",
            order_id=order_id,
            from_status=event.from_status,
            to_status=event.to_status,
            actor=event.actor,
        )
        self._notify(event)
        return TransitionResult(order=order, event=event)

    def _notify(self, event: OrderStatusChanged) -> None:
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Transition listener failed",
                    order_id=str(event.order_id),
                    to_status=event.to_status,
                    error=str(e),
                )
