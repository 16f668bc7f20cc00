"""Notification dispatcher: decides what to announce and when.

Reacts to order status changes (from the state machine or from a sync
coordinator) and to new orders. Each announcement is recorded as an in-app
Notification and pushed through the configured channel. Delivery is
best-effort: failures are logged and never reach the code that changed the
order. Inside an event loop the push runs on a worker thread in the
background, so a slow provider never holds up a status change; the in-app
record is written before the caller resumes.

De-duplication is per process and keyed by (order id, status), so one
status change is announced at most once even when it is observed twice.
"""

import asyncio

import structlog
from protean.utils.globals import current_domain

from tracking.channel import get_channel
from tracking.channel.push_port import SENT
from tracking.config import get_settings
from tracking.notification.notification import Notification, NotificationType
from tracking.order.events import OrderPlaced, OrderStatusChanged
from tracking.templates import get_template, template_for_status

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        channel=None,
        language: str | None = None,
        ttl_days: int | None = None,
        operations_recipient: str | None = None,
    ):
        settings = get_settings()
        self._channel = channel
        self.language = language or settings.notification_language
        self.ttl_days = ttl_days if ttl_days is not None else settings.notification_ttl_days
        self.operations_recipient = operations_recipient or settings.operations_recipient_id
        self._announced: set[tuple[str, str]] = set()
        self._in_flight: set[asyncio.Task] = set()
        self._last_push: asyncio.Task | None = None

    @property
    def channel(self):
        if self._channel is None:
            self._channel = get_channel()
        return self._channel

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def on_transition(self, event: OrderStatusChanged) -> Notification | None:
        """Announce a transition emitted by the state machine."""
        return self._announce_status(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            status=event.to_status,
            context={
                "order_number": event.order_number,
                "recipient_name": event.recipient_name,
                "delivery_remarks": event.delivery_remarks,
            },
        )

    def on_status_changed(self, change) -> Notification | None:
        """Announce a status change observed by a sync coordinator."""
        document = change.snapshot.document
        return self._announce_status(
            order_id=str(change.order_id),
            recipient_id=str(document.get("customer_id")),
            status=change.status,
            context={
                "order_number": document.get("order_number"),
                "recipient_name": document.get("recipient_name"),
                "delivery_remarks": document.get("delivery_remarks"),
            },
        )

    def on_order_placed(self, event: OrderPlaced) -> list[Notification]:
        """Tell the customer the order arrived and alert operations."""
        order_id = str(event.order_id)
        key = (order_id, NotificationType.ORDER_RECEIVED.value)
        if key in self._announced:
            return []
        self._announced.add(key)

        context = {"order_number": event.order_number, "total": event.total}
        created = []
        for recipient_id, notification_type in (
            (str(event.customer_id), NotificationType.ORDER_RECEIVED.value),
            (self.operations_recipient, NotificationType.NEW_ORDER_ALERT.value),
        ):
            rendered = get_template(notification_type).render(context, self.language)
            notification = self._deliver(
                recipient_id=recipient_id,
                notification_type=notification_type,
                rendered=rendered,
                order_id=order_id,
                order_number=event.order_number,
                status=event.status,
            )
            if notification is not None:
                created.append(notification)
        return created

    async def flush(self) -> None:
        """Wait for pushes still in flight on the running loop."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def forget(self, order_id: str) -> None:
        """Drop de-duplication state for an order (after it is closed)."""
        self._announced = {key for key in self._announced if key[0] != order_id}

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _announce_status(self, order_id: str, recipient_id: str, status: str, context: dict) -> Notification | None:
        template_cls = template_for_status(status)
        if template_cls is None:
            logger.debug("No message for status, nothing to announce", order_id=order_id, status=status)
            return None

        key = (order_id, status)
        if key in self._announced:
            logger.debug("Status already announced", order_id=order_id, status=status)
            return None
        self._announced.add(key)

        return self._deliver(
            recipient_id=recipient_id,
            notification_type=template_cls.notification_type,
            rendered=template_cls.render(context, self.language),
            order_id=order_id,
            order_number=context.get("order_number"),
            status=status,
        )

    def _deliver(
        self,
        recipient_id: str,
        notification_type: str,
        rendered: dict,
        order_id: str,
        order_number,
        status: str,
    ) -> Notification | None:
        try:
            notification = Notification.create(
                recipient_id=recipient_id,
                notification_type=notification_type,
                title=rendered["title"],
                body=rendered["body"],
                order_id=order_id,
                order_number=order_number,
                language=self.language,
                ttl_days=self.ttl_days,
            )
            current_domain.repository_for(Notification).add(notification)
        except Exception as e:
            logger.error(
                "Failed to record notification",
                order_id=order_id,
                recipient_id=recipient_id,
                notification_type=notification_type,
                error=str(e),
            )
            return None

        self._send_push(
            notification,
            data={
                "notification_id": str(notification.id),
                "order_id": order_id,
                "status": status,
                "type": notification_type,
            },
        )
        return notification

    def _send_push(self, notification: Notification, data: dict) -> None:
        """Push off the event loop when one is running; inline otherwise."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._push(notification, data)
            return

        task = loop.create_task(
            self._push_after(self._last_push, notification, data),
            name=f"push-{notification.id}",
        )
        self._last_push = task
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _push_after(self, previous: asyncio.Task | None, notification: Notification, data: dict) -> None:
        # Pushes leave in the order they were announced
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        await asyncio.to_thread(self._push, notification, data)

    def _push(self, notification: Notification, data: dict) -> None:
        order_id = data["order_id"]
        try:
            result = self.channel.send(
                recipient_id=str(notification.recipient_id),
                title=notification.title,
                body=notification.body,
                data=data,
            )
            if result.get("status") == SENT:
                logger.info(
                    "Notification pushed",
                    notification_id=str(notification.id),
                    order_id=order_id,
                    notification_type=data["type"],
                )
            else:
                logger.warning(
                    "Push delivery failed",
                    notification_id=str(notification.id),
                    order_id=order_id,
                    error=result.get("error", "Unknown dispatch error"),
                )
        except Exception as e:
            logger.warning(
                "Push dispatch failed",
                notification_id=str(notification.id),
                order_id=order_id,
                error=str(e),
            )


_dispatcher_instance: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    """Return the process-wide dispatcher (singleton)."""
    global _dispatcher_instance
    if _dispatcher_instance is None:
        _dispatcher_instance = NotificationDispatcher()
    return _dispatcher_instance


def reset_dispatcher():
    """Reset the dispatcher singleton (useful for testing)."""
    global _dispatcher_instance
    _dispatcher_instance = None
