"""Order received template: sent to the customer when checkout succeeds."""

from tracking.notification.notification import NotificationType


class OrderReceivedTemplate:
    notification_type = NotificationType.ORDER_RECEIVED.value
    status = None

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        if language == "ar":
            return {
                "title": "قيد الانتظار",
                "body": f"تم استقبال طلبك #{order_number} ✅",
            }
        return {
            "title": "Order Received",
            "body": f"Your order #{order_number} has been received ✅",
        }
