"""Operator-facing split actions.

Each action takes the per-order or per-split lock and processes its command
synchronously, so the lock spans the read, the transition and the commit.
Two actions on the same split never interleave; actions on different splits
run concurrently.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from allocation.order_source import get_order_source
from allocation.split.cancellation import CancelSplitOrder
from allocation.split.confirmation import ConfirmSplitOrder
from allocation.split.delivery import DeliverSplitOrder
from allocation.split.dispatch import DispatchSplitOrder
from allocation.split.hold import PlaceSplitOnHold, UpdateHoldStatus
from allocation.split.pickup import BookDeliveryTask, MarkReadyForPickup, PickupOutcome
from allocation.split.planner import SplitMode, configured_split_mode
from allocation.split.split_order import SplitOrder
from allocation.split.splitting import LinkDraftOrder, plan_command_for
from allocation.split.tracking import SyncTrackingStatus
from allocation.stock.compensation import CompensateSplitStock
from allocation.utils.locks import order_lock, split_lock

logger = structlog.get_logger(__name__)


def split_order(order_id: str, split_mode: SplitMode | str | None = None, store_id: str | None = None) -> dict:
    """Fetch the order from the order source and split it across stores."""
    order = get_order_source().find_order(str(order_id))
    if order is None:
        raise ObjectNotFoundError(f"Order {order_id} not found at the order source")

    mode = SplitMode(split_mode) if split_mode else configured_split_mode()
    with order_lock(order.order_id):
        return current_domain.process(plan_command_for(order, mode, store_id), asynchronous=False)


def link_draft_order(order_id: str, draft_order_id: str) -> None:
    with order_lock(order_id):
        current_domain.process(LinkDraftOrder(order_id=order_id, draft_order_id=draft_order_id), asynchronous=False)


def place_on_hold(split_id: str, on_hold_status: str = "open", comment: str | None = None) -> None:
    with split_lock(split_id):
        current_domain.process(
            PlaceSplitOnHold(split_id=split_id, on_hold_status=on_hold_status, comment=comment),
            asynchronous=False,
        )


def update_hold_status(split_id: str, on_hold_status: str) -> None:
    with split_lock(split_id):
        current_domain.process(UpdateHoldStatus(split_id=split_id, on_hold_status=on_hold_status), asynchronous=False)


def confirm(split_id: str) -> None:
    with split_lock(split_id):
        current_domain.process(ConfirmSplitOrder(split_id=split_id), asynchronous=False)


def mark_ready_for_pickup(split_id: str) -> PickupOutcome:
    """Commit the pickup transition, then book the carrier task."""
    with split_lock(split_id):
        current_domain.process(MarkReadyForPickup(split_id=split_id), asynchronous=False)
        return current_domain.process(BookDeliveryTask(split_id=split_id), asynchronous=False)


def book_delivery_task(split_id: str) -> PickupOutcome:
    """Retry booking for a split that is ready but has no carrier task."""
    with split_lock(split_id):
        return current_domain.process(BookDeliveryTask(split_id=split_id), asynchronous=False)


def dispatch(split_id: str) -> None:
    with split_lock(split_id):
        current_domain.process(DispatchSplitOrder(split_id=split_id), asynchronous=False)


def deliver(split_id: str) -> None:
    with split_lock(split_id):
        current_domain.process(DeliverSplitOrder(split_id=split_id), asynchronous=False)


def cancel(split_id: str, reason: str | None = None) -> None:
    with split_lock(split_id):
        current_domain.process(CancelSplitOrder(split_id=split_id, reason=reason), asynchronous=False)
    logger.info("Split order cancelled", split_id=split_id, reason=reason)


def compensate_stock(split_id: str) -> dict:
    """Restore a cancelled split's stock when the automatic restore did not run."""
    with split_lock(split_id):
        return current_domain.process(CompensateSplitStock(split_id=split_id), asynchronous=False)


def sync_tracking(**payload) -> dict:
    """Apply a carrier webhook under the lock of the split it belongs to."""
    command = SyncTrackingStatus(**payload)
    split_id = command.split_id
    if not split_id and command.task_id:
        split = current_domain.repository_for(SplitOrder).by_task_id(command.task_id)
        if split is None:
            raise ObjectNotFoundError(f"No split order for carrier task {command.task_id}")
        split_id = split.split_id
    if not split_id:
        # Rejected by the handler: neither identifier was sent
        return current_domain.process(command, asynchronous=False)

    with split_lock(split_id):
        return current_domain.process(command, asynchronous=False)
