"""Split order pickup — ready for pickup, then book the carrier task.

Marking a split ready for pickup commits on its own. Booking the delivery
task is a separate command that runs against the committed split:

1. ask the provider whether the drop location is serviceable;
2. unserviceable: annotate the split with the error and stop;
3. serviceable: record the payout quote and create the task (retried on
   transient failures);
4. accepted: record task id, status and message on the split.

Business failures come back as ``PickupOutcome(success=False)``. The
error annotation still commits so operators see it on the split.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.errors import UpstreamUnavailable
from allocation.logistics import get_logistics
from allocation.logistics.port import DeliveryRequest, Location
from allocation.logistics.retry import call_with_retry
from allocation.split.order_info import OrderInfo
from allocation.split.split_order import SplitOrder, SplitOrderStatus
from allocation.store.store import Store

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PickupOutcome:
    success: bool
    error: str | None = None
    task_id: str | None = None


@allocation.command(part_of="SplitOrder")
class MarkReadyForPickup:
    split_id = String(required=True, max_length=150)


@allocation.command(part_of="SplitOrder")
class BookDeliveryTask:
    """Check serviceability and create the carrier task for a ready split."""

    split_id = String(required=True, max_length=150)


def delivery_request_for(split: SplitOrder) -> DeliveryRequest:
    store = current_domain.repository_for(Store).get(split.store_id)
    try:
        info = current_domain.repository_for(OrderInfo).get(split.order_id)
        address, contact, order_total, paid = info.address, info.phone_number, info.order_total, info.is_prepaid
        customer = info.customer_name or ""
    except ObjectNotFoundError:
        address, contact, order_total, paid, customer = {}, None, 0.0, True, ""

    return DeliveryRequest(
        split_id=split.split_id,
        order_number=split.order_number,
        store_id=str(split.store_id),
        pickup=Location(
            name=store.store_name,
            address=store.address or "",
            latitude=store.latitude,
            longitude=store.longitude,
        ),
        drop=Location(
            name=address.get("name") or customer,
            address=address.get("address") or "",
            contact_number=address.get("phone") or contact,
            city=address.get("city"),
            latitude=address.get("latitude"),
            longitude=address.get("longitude"),
        ),
        order_total=order_total or 0.0,
        paid=paid,
        items=split.line_items_data(),
    )


@allocation.command_handler(part_of=SplitOrder)
class PickupHandler:
    @handle(MarkReadyForPickup)
    def mark_ready_for_pickup(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.mark_ready_for_pickup()
        repo.add(split)

    @handle(BookDeliveryTask)
    def book_delivery_task(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        if split.status != SplitOrderStatus.READY_FOR_PICKUP:
            raise ValidationError(
                {"order_status": [f"Cannot book a delivery task for a split in {split.order_status}"]}
            )
        if split.has_active_task:
            return PickupOutcome(success=True, task_id=split.tpl_task_id)

        logistics = get_logistics()
        request = delivery_request_for(split)

        try:
            serviceability = logistics.check_serviceability(request)
        except UpstreamUnavailable as exc:
            return self._fail(repo, split, f"Serviceability check failed: {exc}")
        if not serviceability.serviceable:
            return self._fail(repo, split, serviceability.error or "Location is not serviceable")

        if serviceability.payout is not None:
            payout = serviceability.payout
            split.record_payout(payout.price, payout.tax, payout.total)

        try:
            task = call_with_retry(logistics.create_task, request)
        except UpstreamUnavailable as exc:
            return self._fail(repo, split, f"Task creation failed: {exc}")
        if not task.accepted:
            return self._fail(repo, split, task.message or f"Task rejected with status {task.status_code}")

        split.record_delivery_task(task.task_id, str(task.status).lower(), task.status_code, task.message)
        repo.add(split)
        logger.info("Delivery task created", split_id=split.split_id, task_id=task.task_id)
        return PickupOutcome(success=True, task_id=task.task_id)

    @staticmethod
    def _fail(repo, split: SplitOrder, error: str) -> PickupOutcome:
        split.record_logistics_error(error)
        repo.add(split)
        logger.warning("Delivery task not booked", split_id=split.split_id, error=error)
        return PickupOutcome(success=False, error=error)
