"""Split order dispatch — the rider has picked the parcel up."""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.split.split_order import SplitOrder


@allocation.command(part_of="SplitOrder")
class DispatchSplitOrder:
    split_id = String(required=True, max_length=150)


@allocation.command_handler(part_of=SplitOrder)
class DispatchSplitOrderHandler:
    @handle(DispatchSplitOrder)
    def dispatch_split_order(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.dispatch()
        repo.add(split)
