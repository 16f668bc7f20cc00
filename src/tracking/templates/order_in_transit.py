"""In transit template: the driver is on the way to the customer."""

from tracking.notification.notification import NotificationType


class OrderInTransitTemplate:
    notification_type = NotificationType.ORDER_IN_TRANSIT.value
    status = "in_transit"

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        if language == "ar":
            return {
                "title": "قيد التوصيل",
                "body": f"طلبك #{order_number} في الطريق إليك 🚚",
            }
        return {
            "title": "In Transit",
            "body": f"Your order #{order_number} is on its way 🚚",
        }
