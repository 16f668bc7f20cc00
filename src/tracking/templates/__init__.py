"""Template registry: maps notification types and order statuses to templates.

Each template renders a localized (title, body) pair from an order context.
Statuses without a template produce no notification.
"""

from tracking.notification.notification import NotificationType
from tracking.templates.new_order_alert import NewOrderAlertTemplate
from tracking.templates.order_cancelled import OrderCancelledTemplate
from tracking.templates.order_confirmed import OrderConfirmedTemplate
from tracking.templates.order_delivered import OrderDeliveredTemplate
from tracking.templates.order_in_transit import OrderInTransitTemplate
from tracking.templates.order_received import OrderReceivedTemplate
from tracking.templates.order_shipped import OrderShippedTemplate

SUPPORTED_LANGUAGES = ("en", "ar")

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationType.ORDER_RECEIVED.value: OrderReceivedTemplate,
    NotificationType.ORDER_CONFIRMED.value: OrderConfirmedTemplate,
    NotificationType.ORDER_SHIPPED.value: OrderShippedTemplate,
    NotificationType.ORDER_IN_TRANSIT.value: OrderInTransitTemplate,
    NotificationType.ORDER_DELIVERED.value: OrderDeliveredTemplate,
    NotificationType.ORDER_CANCELLED.value: OrderCancelledTemplate,
    NotificationType.NEW_ORDER_ALERT.value: NewOrderAlertTemplate,
}

STATUS_TEMPLATES: dict[str, type] = {
    template_cls.status: template_cls for template_cls in TEMPLATE_REGISTRY.values() if template_cls.status
}


def get_template(notification_type: str):
    """Look up a template class by notification type string."""
    template_cls = TEMPLATE_REGISTRY.get(notification_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification type: {notification_type}")
    return template_cls


def template_for_status(status: str):
    """Template for an order status, or None when the status is not announced."""
    return STATUS_TEMPLATES.get(status)


def render(status: str, language: str = "en", context: dict | None = None) -> dict | None:
    """Localized title/body for an order status, or None when unmapped."""
    template_cls = template_for_status(status)
    if template_cls is None:
        return None
    if language not in SUPPORTED_LANGUAGES:
        language = "en"
    return template_cls.render(context or {}, language)
