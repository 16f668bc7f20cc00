"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, String

from tracking.domain import tracking


@tracking.event(part_of="Notification")
class NotificationCreated:
    """An in-app notification was recorded for a recipient."""

    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    order_id = Identifier()
    notification_type = String(required=True)
    created_at = DateTime(required=True)
    expires_at = DateTime()


@tracking.event(part_of="Notification")
class NotificationRead:
    """The recipient opened the notification."""

    __version__ = 1

    notification_id = Identifier(required=True)
    recipient_id = Identifier(required=True)
    read_at = DateTime(required=True)
