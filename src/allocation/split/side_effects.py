"""Post-commit side effects of split order transitions.

These handlers react to committed lifecycle events. Every collaborator call
is isolated: a failing SMS gateway, order source or carrier is logged and
never rolls back or blocks the transition that triggered it.

    on hold           -> customer SMS + email
    out for delivery  -> confirm fulfillment upstream, SMS + email
    delivered         -> confirm fulfillment upstream, SMS + email
    cancelled         -> cancel upstream order, cancel carrier task,
                         record carrier confirmation, SMS + email
    withdrawn         -> nothing; re-planning moved the quantity elsewhere
    order split       -> confirmation SMS + email, flags on OrderInfo
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from allocation.channel.dispatcher import NotificationDispatcher, Recipient
from allocation.channel.notification_event import NotificationEvent
from allocation.domain import allocation
from allocation.logistics import get_logistics
from allocation.logistics.retry import call_with_retry
from allocation.order_source import get_order_source
from allocation.split.cancellation import RecordTaskCancellation
from allocation.split.events import (
    OrderSplitRecorded,
    SplitOrderCancelled,
    SplitOrderDelivered,
    SplitOrderOutForDelivery,
    SplitOrderPlacedOnHold,
)
from allocation.split.order_info import OrderInfo
from allocation.split.split_order import SplitOrder, SplitOrderStatus

logger = structlog.get_logger(__name__)


def _recipient_for(order_id) -> Recipient | None:
    try:
        info = current_domain.repository_for(OrderInfo).get(order_id)
    except ObjectNotFoundError:
        logger.warning("No order info for notification", order_id=str(order_id))
        return None
    return Recipient(
        order_name=info.reference_id,
        customer_name=info.customer_name or "",
        phone_number=info.phone_number,
        email=info.email,
    )


def _isolated(step: str, split_id: str, action, *args, **kwargs):
    """Run one side effect; log and return None when it raises."""
    try:
        return action(*args, **kwargs)
    except Exception as exc:
        logger.error("Split side effect failed", step=step, split_id=split_id, error=str(exc))
        return None


def _notify(split_id: str, order_id, event_type: NotificationEvent, order_status: SplitOrderStatus) -> None:
    recipient = _recipient_for(order_id)
    if recipient is None:
        return
    dispatcher = NotificationDispatcher()
    sms = _isolated("sms", split_id, dispatcher.send, recipient, event_type.value, {"split_id": split_id})
    if sms is not None and sms.get("status") not in ("sent", "skipped"):
        logger.warning(
            "SMS not delivered",
            split_id=split_id,
            notification_event=event_type.value,
            error=sms.get("error"),
        )
    _isolated("email", split_id, dispatcher.send_email, split_id, order_status.value, recipient)


@allocation.event_handler(part_of=SplitOrder)
class SplitOrderSideEffects:
    @handle(SplitOrderPlacedOnHold)
    def on_placed_on_hold(self, event: SplitOrderPlacedOnHold) -> None:
        _notify(event.split_id, event.order_id, NotificationEvent.ON_HOLD, SplitOrderStatus.ON_HOLD)

    @handle(SplitOrderOutForDelivery)
    def on_out_for_delivery(self, event: SplitOrderOutForDelivery) -> None:
        _isolated("confirm_fulfillment", event.split_id, get_order_source().confirm_fulfillment, event.split_id)
        _notify(event.split_id, event.order_id, NotificationEvent.OUT_FOR_DELIVERY, SplitOrderStatus.OUT_FOR_DELIVERY)

    @handle(SplitOrderDelivered)
    def on_delivered(self, event: SplitOrderDelivered) -> None:
        _isolated("confirm_fulfillment", event.split_id, get_order_source().confirm_fulfillment, event.split_id)
        _notify(event.split_id, event.order_id, NotificationEvent.DELIVERED, SplitOrderStatus.DELIVERED)

    @handle(SplitOrderCancelled)
    def on_cancelled(self, event: SplitOrderCancelled) -> None:
        if event.replanned:
            # The order still ships from other stores; nothing to tell anyone
            logger.info("Split withdrawn by re-planning", split_id=event.split_id, order_id=str(event.order_id))
            return

        _isolated("cancel_order", event.split_id, get_order_source().cancel_order, str(event.order_id))

        if event.tpl_task_id:
            result = _isolated(
                "cancel_task",
                event.split_id,
                call_with_retry,
                get_logistics().cancel_task,
                event.tpl_task_id,
                str(event.store_id),
            )
            if result is not None and result.cancelled:
                _isolated(
                    "record_task_cancellation",
                    event.split_id,
                    current_domain.process,
                    RecordTaskCancellation(
                        split_id=event.split_id,
                        task_id=event.tpl_task_id,
                        status_code=result.status_code,
                        message=result.message,
                    ),
                    asynchronous=False,
                )
            elif result is not None:
                logger.warning(
                    "Carrier did not cancel delivery task",
                    split_id=event.split_id,
                    task_id=event.tpl_task_id,
                    status_code=result.status_code,
                )

        _notify(event.split_id, event.order_id, NotificationEvent.CANCELLED, SplitOrderStatus.CANCELLED)


@allocation.event_handler(part_of=OrderInfo)
class OrderConfirmationNotifier:
    @handle(OrderSplitRecorded)
    def on_order_split_recorded(self, event: OrderSplitRecorded) -> None:
        repo = current_domain.repository_for(OrderInfo)
        info = repo.get(event.order_id)
        if info.confirmation_sms_sent and info.confirmation_email_sent:
            return

        recipient = Recipient(
            order_name=info.reference_id,
            customer_name=info.customer_name or "",
            phone_number=info.phone_number,
            email=info.email,
        )
        dispatcher = NotificationDispatcher()
        sms_sent = email_sent = False
        if not info.confirmation_sms_sent:
            result = _isolated("sms", info.reference_id, dispatcher.send, recipient, NotificationEvent.CONFIRMATION.value)
            sms_sent = result is not None and result.get("status") == "sent"
        if not info.confirmation_email_sent:
            result = _isolated("email", info.reference_id, dispatcher.send_email, info.reference_id, "new", recipient)
            email_sent = result is not None and result.get("status") == "sent"

        if sms_sent or email_sent:
            info.mark_confirmation_sent(sms=sms_sent, email=email_sent)
            repo.add(info)
