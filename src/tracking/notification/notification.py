"""Notification aggregate: in-app notices raised by order status changes.

Lifecycle:
    created → (optionally) read → deleted (by the recipient or the expiry sweep)
"""

from datetime import datetime, timedelta
from enum import Enum

from protean.fields import Boolean, DateTime, Identifier, String, Text

from tracking.domain import tracking
from tracking.notification.events import NotificationCreated, NotificationRead
from tracking.utils.clock import parse_iso, utc_now


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    ORDER_RECEIVED = "OrderReceived"
    ORDER_CONFIRMED = "OrderConfirmed"
    ORDER_SHIPPED = "OrderShipped"
    ORDER_IN_TRANSIT = "OrderInTransit"
    ORDER_DELIVERED = "OrderDelivered"
    ORDER_CANCELLED = "OrderCancelled"
    NEW_ORDER_ALERT = "NewOrderAlert"


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@tracking.aggregate
class Notification:
    recipient_id = Identifier(required=True)
    order_id = Identifier()
    order_number = String(max_length=50)
    notification_type = String(required=True, choices=NotificationType)
    title = String(required=True, max_length=255)
    body = Text(required=True)
    language = String(max_length=5, default="en")
    read = Boolean(default=False)
    read_at = DateTime()
    created_at = DateTime()
    expires_at = DateTime()

    @classmethod
    def create(
        cls,
        recipient_id,
        notification_type,
        title,
        body,
        order_id=None,
        order_number=None,
        language="en",
        ttl_days=7,
    ):
        now = utc_now()
        notification = cls(
            recipient_id=recipient_id,
            order_id=order_id,
            order_number=str(order_number) if order_number is not None else None,
            notification_type=notification_type,
            title=title,
            body=body,
            language=language,
            created_at=now,
            expires_at=now + timedelta(days=ttl_days) if ttl_days else None,
        )
        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                recipient_id=str(recipient_id),
                order_id=str(order_id) if order_id else None,
                notification_type=notification_type,
                created_at=now,
                expires_at=notification.expires_at,
            )
        )
        return notification

    def mark_read(self) -> None:
        if self.read:
            return
        now = utc_now()
        self.read = True
        self.read_at = now
        self.raise_(
            NotificationRead(
                notification_id=str(self.id),
                recipient_id=str(self.recipient_id),
                read_at=now,
            )
        )

    def is_expired(self, at: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        at = parse_iso(at) if at is not None else utc_now()
        return parse_iso(self.expires_at) <= at
