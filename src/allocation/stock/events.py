"""Stock domain events."""

from protean.fields import DateTime, Identifier, Integer, String

from allocation.domain import allocation


@allocation.event(part_of="HybridStockRecord")
class HybridStockRefreshed:
    """The aggregator recomputed a (sku, store) hybrid stock figure."""

    __version__ = 1

    sku = String(required=True)
    store_id = Identifier(required=True)
    mode = String(required=True)
    primary_stock = Integer(required=True)
    backup_stock = Integer(required=True)
    hybrid_stock = Integer(required=True)
    refreshed_at = DateTime(required=True)


@allocation.event(part_of="HybridStockRecord")
class HybridStockRestored:
    """Quantity from a cancelled split order was added back."""

    __version__ = 1

    sku = String(required=True)
    store_id = Identifier(required=True)
    quantity = Integer(required=True)
    split_id = String(required=True)
    hybrid_stock = Integer(required=True)
    restored_at = DateTime(required=True)
