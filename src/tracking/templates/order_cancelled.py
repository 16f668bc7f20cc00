"""Order cancelled template."""

from tracking.notification.notification import NotificationType


class OrderCancelledTemplate:
    notification_type = NotificationType.ORDER_CANCELLED.value
    status = "cancelled"

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        if language == "ar":
            return {
                "title": "تم الإلغاء",
                "body": f"تم إلغاء طلبك #{order_number}",
            }
        return {
            "title": "Order Cancelled",
            "body": f"Your order #{order_number} has been cancelled",
        }
