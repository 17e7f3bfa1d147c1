"""Stock compensation — give cancelled quantities back to hybrid stock.

Cancelling a split releases every (sku, store) quantity it held. The split's
``stock_compensated`` flag flips in the same unit of work as the hybrid
stock increments, so a retried cancellation or a repeated compensation
request never restores the same quantity twice.
"""

from collections import defaultdict

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from allocation.domain import allocation
from allocation.split.events import SplitOrderCancelled
from allocation.split.split_order import SplitOrder
from allocation.stock.stock import HybridStockRecord, make_stock_key

logger = structlog.get_logger(__name__)


@allocation.command(part_of="HybridStockRecord")
class CompensateSplitStock:
    split_id = String(required=True, max_length=150)


@allocation.command_handler(part_of=HybridStockRecord)
class CompensateSplitStockHandler:
    @handle(CompensateSplitStock)
    def compensate_split_stock(self, command):
        split_repo = current_domain.repository_for(SplitOrder)
        stock_repo = current_domain.repository_for(HybridStockRecord)

        split = split_repo.get(command.split_id)
        split.mark_stock_compensated()

        quantities: dict[tuple[str, str], int] = defaultdict(int)
        for item in split.line_items:
            quantities[(item.sku, str(item.store_id))] += item.quantity

        restored = {}
        for (sku, store_id), quantity in quantities.items():
            try:
                record = stock_repo.get(make_stock_key(sku, store_id))
            except ObjectNotFoundError:
                # Absent record means zero stock
                record = HybridStockRecord.create(sku=sku, store_id=store_id, primary_stock=0)
            record.restore(quantity, split.split_id)
            stock_repo.add(record)
            restored[make_stock_key(sku, store_id)] = quantity

        split_repo.add(split)
        logger.info("Split stock compensated", split_id=split.split_id, restored=restored)
        return restored


@allocation.event_handler(part_of=HybridStockRecord, stream_category="allocation::split_order")
class SplitCancellationStockHandler:
    @handle(SplitOrderCancelled)
    def on_split_cancelled(self, event: SplitOrderCancelled) -> None:
        try:
            current_domain.process(CompensateSplitStock(split_id=event.split_id), asynchronous=False)
        except ValidationError as exc:
            logger.info("Split stock not compensated", split_id=event.split_id, reason=exc.messages)
        except Exception as exc:
            logger.error("Split stock compensation failed", split_id=event.split_id, error=str(exc))
