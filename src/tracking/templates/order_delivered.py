"""Delivered template: the order was handed to the recipient."""

from tracking.notification.notification import NotificationType


class OrderDeliveredTemplate:
    notification_type = NotificationType.ORDER_DELIVERED.value
    status = "received"

    @staticmethod
    def render(context: dict, language: str = "en") -> dict:
        order_number = context.get("order_number", "")
        recipient_name = context.get("recipient_name")
        remarks = context.get("delivery_remarks")
        if language == "ar":
            body = f"تم استلام طلبك #{order_number} 🎉"
            if recipient_name:
                body += f" (المستلم: {recipient_name})"
            if remarks:
                body += f" ملاحظة: {remarks}"
            return {"title": "تم الاستلام", "body": body}

        body = f"Your order #{order_number} has been delivered 🎉"
        if recipient_name:
            body += f" Received by {recipient_name}."
        if remarks:
            body += f" Note: {remarks}"
        return {"title": "Received", "body": body}
