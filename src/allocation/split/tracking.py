"""Carrier tracking sync — apply rider status updates to a split order.

Carrier codes map onto lifecycle transitions. A code that would move the
split backward, or out of a terminal status, is recorded on the split but
does not transition it.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.split.split_order import _VALID_TRANSITIONS, STATUS_RANK, SplitOrder, SplitOrderStatus

logger = structlog.get_logger(__name__)

CARRIER_STATUS_MAP = {
    "ALLOTTED": SplitOrderStatus.READY_FOR_PICKUP,
    "REACHED_PICKUP": SplitOrderStatus.READY_FOR_PICKUP,
    "DISPATCHED": SplitOrderStatus.OUT_FOR_DELIVERY,
    "DELIVERED": SplitOrderStatus.DELIVERED,
}


@allocation.command(part_of="SplitOrder")
class SyncTrackingStatus:
    """Carrier webhook payload; the split is found by ``split_id`` or ``task_id``."""

    split_id = String(max_length=150)
    task_id = String(max_length=100)
    status = String(max_length=50)
    status_code = String(required=True, max_length=50)
    message = Text()
    rider_name = String(max_length=100)
    rider_contact = String(max_length=30)
    tracking_url = String(max_length=500)


def _find_split(repo, command) -> SplitOrder:
    if command.split_id:
        return repo.get(command.split_id)
    if command.task_id:
        split = repo.by_task_id(command.task_id)
        if split is not None:
            return split
        raise ObjectNotFoundError(f"No split order for carrier task {command.task_id}")
    raise ValidationError({"split_id": ["Either split_id or task_id is required"]})


@allocation.command_handler(part_of=SplitOrder)
class TrackingHandler:
    @handle(SyncTrackingStatus)
    def sync_tracking_status(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = _find_split(repo, command)
        code = command.status_code.upper()

        split.record_tracking(
            status=command.status,
            status_code=code,
            message=command.message,
            rider_name=command.rider_name,
            rider_contact=command.rider_contact,
            tracking_url=command.tracking_url,
        )

        current = split.status
        target = CARRIER_STATUS_MAP.get(code)
        transitioned = False
        if target is not None and target != current:
            if STATUS_RANK[target] > STATUS_RANK[current] and target in _VALID_TRANSITIONS[current]:
                if target == SplitOrderStatus.READY_FOR_PICKUP:
                    split.mark_ready_for_pickup()
                elif target == SplitOrderStatus.OUT_FOR_DELIVERY:
                    split.dispatch()
                else:
                    split.deliver()
                transitioned = True
            else:
                logger.warning(
                    "Carrier status ignored for split",
                    split_id=split.split_id,
                    status_code=code,
                    order_status=current.value,
                )

        repo.add(split)
        return {"split_id": split.split_id, "order_status": split.order_status, "transitioned": transitioned}
