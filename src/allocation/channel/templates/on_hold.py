"""On-hold template."""

from allocation.channel.notification_event import NotificationEvent


class OnHoldTemplate:
    event = NotificationEvent.ON_HOLD.value

    @staticmethod
    def render(context: dict) -> dict:
        order_name = context.get("order_name", "N/A")
        return {
            "sms": f"Your order {order_name} is on hold. Our team will contact you shortly.",
            "subject": f"Order {order_name} is on hold",
            "body": (
                f"Your order {order_name} (shipment {context.get('split_id', '')}) has been placed on hold.\n\n"
                "Our store team will reach out to you shortly to resolve this."
            ),
        }
