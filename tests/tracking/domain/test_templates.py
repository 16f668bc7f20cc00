"""Tests for notification templates and the status-to-template registry."""

import pytest

from tracking.notification.notification import NotificationType
from tracking.templates import (
    STATUS_TEMPLATES,
    TEMPLATE_REGISTRY,
    get_template,
    render,
    template_for_status,
)


class TestRegistry:
    def test_every_notification_type_has_a_template(self):
        assert set(TEMPLATE_REGISTRY) == {t.value for t in NotificationType}

    def test_announced_statuses(self):
        assert set(STATUS_TEMPLATES) == {"confirmed", "shipped", "in_transit", "received", "cancelled"}

    @pytest.mark.parametrize("status", ["pending", "processing", "completed", "unknown"])
    def test_unannounced_statuses(self, status):
        assert template_for_status(status) is None
        assert render(status, "en", {"order_number": 1}) is None

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            get_template("OrderTeleported")

    def test_received_status_uses_delivered_template(self):
        assert template_for_status("received").notification_type == NotificationType.ORDER_DELIVERED.value


class TestRendering:
    @pytest.mark.parametrize(
        "status,title",
        [
            ("confirmed", "Order Confirmed"),
            ("shipped", "Shipped"),
            ("in_transit", "In Transit"),
            ("received", "Received"),
            ("cancelled", "Order Cancelled"),
        ],
    )
    def test_english_titles(self, status, title):
        rendered = render(status, "en", {"order_number": 1042})
        assert rendered["title"] == title
        assert "#1042" in rendered["body"]

    def test_arabic(self):
        rendered = render("shipped", "ar", {"order_number": 1042})
        assert rendered["title"] == "تم الشحن"
        assert "#1042" in rendered["body"]

    def test_unsupported_language_falls_back_to_english(self):
        assert render("shipped", "fr", {"order_number": 5}) == render("shipped", "en", {"order_number": 5})

    def test_delivered_mentions_recipient_and_remarks(self):
        rendered = render(
            "received",
            "en",
            {"order_number": 7, "recipient_name": "Jane Doe", "delivery_remarks": "left at door"},
        )
        assert "Jane Doe" in rendered["body"]
        assert "left at door" in rendered["body"]

    def test_new_order_alert_includes_total(self):
        rendered = get_template("NewOrderAlert").render({"order_number": 9, "total": 112.0})
        assert rendered == {"title": "New Order", "body": "New order #9 $112.00"}

    def test_order_received(self):
        rendered = get_template("OrderReceived").render({"order_number": 9})
        assert rendered["title"] == "Order Received"
