"""Cancellation template."""

from allocation.channel.notification_event import NotificationEvent


class CancelledTemplate:
    event = NotificationEvent.CANCELLED.value

    @staticmethod
    def render(context: dict) -> dict:
        order_name = context.get("order_name", "N/A")
        return {
            "sms": f"Your order {order_name} has been cancelled. Any payment will be refunded.",
            "subject": f"Order {order_name} cancelled",
            "body": (
                f"Shipment {context.get('split_id', '')} of order {order_name} has been cancelled.\n\n"
                "If payment was captured, a refund will be processed automatically."
            ),
        }
