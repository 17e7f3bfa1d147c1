"""NotificationDispatcher — renders a template and sends it over a channel.

Sends are fire-and-forget: results come back as dicts, failures are logged
by the caller and never retried.
"""

from dataclasses import dataclass

import structlog

from allocation.channel import EMAIL, SMS, get_channel
from allocation.channel.templates import STATUS_EVENTS, get_template

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Recipient:
    order_name: str
    customer_name: str
    phone_number: str | None = None
    email: str | None = None


class NotificationDispatcher:
    def send(self, recipient: Recipient, event_type: str, context: dict | None = None) -> dict:
        """Send the SMS for ``event_type`` to the recipient's phone number."""
        if not recipient.phone_number:
            return {"status": "skipped", "error": "No phone number on order"}

        content = get_template(event_type).render(
            {"order_name": recipient.order_name, "customer_name": recipient.customer_name, **(context or {})}
        )
        result = get_channel(SMS).send(to=recipient.phone_number, body=content["sms"])
        logger.info("SMS notification dispatched", notification_event=event_type, status=result.get("status"))
        return result

    def send_email(self, split_id: str, order_status: str, recipient: Recipient) -> dict:
        """Send the status email for a split order."""
        if not recipient.email:
            return {"status": "skipped", "error": "No email on order"}
        event_type = STATUS_EVENTS.get(order_status)
        if event_type is None:
            return {"status": "skipped", "error": f"No email for status {order_status}"}

        content = get_template(event_type).render(
            {"order_name": recipient.order_name, "customer_name": recipient.customer_name, "split_id": split_id}
        )
        result = get_channel(EMAIL).send(to=recipient.email, subject=content["subject"], body=content["body"])
        logger.info("Email notification dispatched", split_id=split_id, status=result.get("status"))
        return result
