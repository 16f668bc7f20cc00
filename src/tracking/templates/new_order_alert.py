"""New order alert: tells operations that an order is waiting."""

from tracking.notification.notification import NotificationType


class NewOrderAlertTemplate:
    notification_type = NotificationType.NEW_ORDER_ALERT.value
    status = None

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        total = context.get("total")
        amount = f"${total:.2f}" if isinstance(total, int | float) else ""
        if language == "ar":
            return {
                "title": "طلب جديد",
                "body": f"طلب جديد #{order_number} {amount}".strip(),
            }
        return {
            "title": "New Order",
            "body": f"New order #{order_number} {amount}".strip(),
        }
