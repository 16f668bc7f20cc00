"""Order confirmed template."""

from tracking.notification.notification import NotificationType


class OrderConfirmedTemplate:
    notification_type = NotificationType.ORDER_CONFIRMED.value
    status = "confirmed"

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        if language == "ar":
            return {
                "title": "تم التأكيد",
                "body": f"تم تأكيد طلبك #{order_number} وجاري تجهيزه 👍",
            }
        return {
            "title": "Order Confirmed",
            "body": f"Your order #{order_number} has been confirmed 👍",
        }
