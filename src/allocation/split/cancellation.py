"""Split order cancellation — command and handler.

Cancelling only commits the status change. Releasing the upstream order,
the carrier task and the stock happens in handlers reacting to
SplitOrderCancelled once the transition is committed.
"""

from protean import handle
from protean.fields import String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.split.split_order import SplitOrder


@allocation.command(part_of="SplitOrder")
class CancelSplitOrder:
    split_id = String(required=True, max_length=150)
    reason = String(max_length=500)


@allocation.command(part_of="SplitOrder")
class RecordTaskCancellation:
    """Persist the carrier's confirmation that the delivery task is cancelled."""

    split_id = String(required=True, max_length=150)
    task_id = String(required=True, max_length=100)
    status_code = String(required=True, max_length=50)
    message = Text()


@allocation.command_handler(part_of=SplitOrder)
class SplitCancellationHandler:
    @handle(CancelSplitOrder)
    def cancel_split_order(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.cancel(command.reason)
        repo.add(split)

    @handle(RecordTaskCancellation)
    def record_task_cancellation(self, command):
        repo = current_domain.repository_for(SplitOrder)
        split = repo.get(command.split_id)
        split.record_task_cancellation(command.task_id, command.status_code, command.message)
        repo.add(split)
