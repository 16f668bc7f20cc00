"""Shipped template: the order left with a driver."""

from tracking.notification.notification import NotificationType


class OrderShippedTemplate:
    notification_type = NotificationType.ORDER_SHIPPED.value
    status = "shipped"

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        if language == "ar":
            return {
                "title": "تم الشحن",
                "body": f"تم شحن طلبك #{order_number} 📦",
            }
        return {
            "title": "Shipped",
            "body": f"Your order #{order_number} has been shipped 📦",
        }
