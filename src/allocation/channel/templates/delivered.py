"""Delivery confirmation template."""

from allocation.channel.notification_event import NotificationEvent


class DeliveredTemplate:
    event = NotificationEvent.DELIVERED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_name = context.get("order_name", "N/A")
        return {
            "sms": f"Your order {order_name} has been delivered. Thank you for shopping with us!",
            "subject": f"Order {order_name} delivered",
            "body": (
                f"Shipment {context.get('split_id', '')} of order {order_name} has been delivered.\n\n"
                "If anything is wrong with your order, reply to this email."
            ),
        }
