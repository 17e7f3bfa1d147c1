"""Out-for-delivery template."""

from allocation.channel.notification_event import NotificationEvent


class OutForDeliveryTemplate:
    event = NotificationEvent.OUT_FOR_DELIVERY.value

    @staticmethod
    def render(context: dict) -> dict:
        order_name = context.get("order_name", "N/A")
        return {
            "sms": f"Your order {order_name} is out for delivery.",
            "subject": f"Order {order_name} is out for delivery",
            "body": f"Good news! Shipment {context.get('split_id', '')} of order {order_name} is on its way to you.",
        }
