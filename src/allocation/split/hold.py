"""Split order hold — place on hold and toggle the hold sub-status."""

from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.split.split_order import HoldStatus, SplitOrder


@allocation.command(part_of="SplitOrder")
class PlaceSplitOnHold:
    """Pause a split pending manual or automated release."""

    split_id = String(required=True, max_length=150)
    on_hold_status = String(choices=HoldStatus, default=HoldStatus.OPEN.value)
    comment = Text()


@allocation.command(part_of="SplitOrder")
class UpdateHoldStatus:
    split_id = String(required=True, max_length=150)
    on_hold_status = String(required=True, choices=HoldStatus)


@allocation.command_handler(part_of=SplitOrder)
class SplitHoldHandler:
    @handle(PlaceSplitOnHold)
    def place_on_hold(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.place_on_hold(command.on_hold_status or HoldStatus.OPEN.value, command.comment)
        repo.add(split)

    @handle(UpdateHoldStatus)
    def update_hold_status(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.update_hold_status(command.on_hold_status)
        repo.add(split)
