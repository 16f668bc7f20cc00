"""Tests for the Notification aggregate."""

from datetime import timedelta

from tracking.notification.events import NotificationCreated, NotificationRead
from tracking.notification.notification import Notification, NotificationType
from tracking.utils.clock import parse_iso


def _make_notification(**overrides):
    kwargs = {
        "recipient_id": "cust-001",
        "notification_type": NotificationType.ORDER_SHIPPED.value,
        "title": "Shipped",
        "body": "Your order #7 has been shipped",
        "order_id": "ord-001",
        "order_number": 7,
    }
    kwargs.update(overrides)
    return Notification.create(**kwargs)


class TestNotificationCreation:
    def test_defaults(self):
        notification = _make_notification()
        assert notification.read is False
        assert notification.read_at is None
        assert notification.language == "en"
        assert notification.order_number == "7"

    def test_expires_after_ttl(self):
        notification = _make_notification(ttl_days=7)
        created_at = parse_iso(notification.created_at)
        assert parse_iso(notification.expires_at) - created_at == timedelta(days=7)

    def test_no_ttl_never_expires(self):
        notification = _make_notification(ttl_days=0)
        assert notification.expires_at is None
        assert not notification.is_expired(parse_iso(notification.created_at) + timedelta(days=365))

    def test_raises_created_event(self):
        notification = _make_notification()
        assert len(notification._events) == 1
        event = notification._events[0]
        assert isinstance(event, NotificationCreated)
        assert event.notification_id == str(notification.id)
        assert event.notification_type == "OrderShipped"


class TestNotificationLifecycle:
    def test_mark_read(self):
        notification = _make_notification()
        notification._events.clear()

        notification.mark_read()
        assert notification.read is True
        assert notification.read_at is not None
        assert isinstance(notification._events[0], NotificationRead)

    def test_mark_read_twice_is_a_no_op(self):
        notification = _make_notification()
        notification.mark_read()
        first_read_at = notification.read_at
        notification._events.clear()

        notification.mark_read()
        assert notification.read_at == first_read_at
        assert notification._events == []

    def test_expiry_boundary(self):
        notification = _make_notification(ttl_days=7)
        expires_at = parse_iso(notification.expires_at)
        assert not notification.is_expired(expires_at - timedelta(seconds=1))
        assert notification.is_expired(expires_at)
