"""Order confirmation template — sent once per order after it is split."""

from allocation.channel.notification_event import NotificationEvent


class OrderConfirmationTemplate:
    event = NotificationEvent.CONFIRMATION.value

    @staticmethod
    def render(context: dict) -> dict:
        order_name = context.get("order_name", "N/A")
        customer_name = context.get("customer_name") or "there"
        return {
            "sms": f"Hi {customer_name}, your order {order_name} is confirmed. We will update you as it moves.",
            "subject": f"Order {order_name} confirmed",
            "body": (
                f"Hi {customer_name},\n\n"
                f"Thank you for your order {order_name}. It has been confirmed and "
                "assigned to our nearest store for fulfillment."
            ),
        }
