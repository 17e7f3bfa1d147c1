"""Split order delivery confirmation."""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.split.split_order import SplitOrder


@allocation.command(part_of="SplitOrder")
class DeliverSplitOrder:
    split_id = String(required=True, max_length=150)


@allocation.command_handler(part_of=SplitOrder)
class DeliverSplitOrderHandler:
    @handle(DeliverSplitOrder)
    def deliver_split_order(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.deliver()
        repo.add(split)
