"""Template registry — maps NotificationEvent values to template classes."""

from allocation.channel.notification_event import NotificationEvent
from allocation.channel.templates.cancelled import CancelledTemplate
from allocation.channel.templates.delivered import DeliveredTemplate
from allocation.channel.templates.on_hold import OnHoldTemplate
from allocation.channel.templates.order_confirmation import OrderConfirmationTemplate
from allocation.channel.templates.out_for_delivery import OutForDeliveryTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NotificationEvent.CONFIRMATION.value: OrderConfirmationTemplate,
    NotificationEvent.ON_HOLD.value: OnHoldTemplate,
    NotificationEvent.OUT_FOR_DELIVERY.value: OutForDeliveryTemplate,
    NotificationEvent.DELIVERED.value: DeliveredTemplate,
    NotificationEvent.CANCELLED.value: CancelledTemplate,
}

# Split order statuses that have an email template
STATUS_EVENTS: dict[str, str] = {
    "on_hold": NotificationEvent.ON_HOLD.value,
    "out_for_delivery": NotificationEvent.OUT_FOR_DELIVERY.value,
    "delivered": NotificationEvent.DELIVERED.value,
    "cancel": NotificationEvent.CANCELLED.value,
    "new": NotificationEvent.CONFIRMATION.value,
}


def get_template(event_type: str):
    template_cls = TEMPLATE_REGISTRY.get(event_type)
    if template_cls is None:
        raise ValueError(f"No template registered for notification event: {event_type}")
    return template_cls
