"""Stock aggregates — raw per-store counts and the derived hybrid stock.

StockRecord is overwritten by the inventory feed, one row per (sku, store).
HybridStockRecord is the buyer-facing figure upserted by the StockAggregator
and restored when a split order is cancelled.

Invariant:
    hybrid_stock == primary_stock + backup_stock, and hybrid_stock >= 0
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from allocation.domain import allocation
from allocation.stock.events import HybridStockRefreshed, HybridStockRestored


def make_stock_key(sku: str, store_id: str) -> str:
    """Natural key shared by StockRecord and HybridStockRecord."""
    return f"{sku}@{store_id}"


@allocation.aggregate
class StockRecord:
    stock_key = String(identifier=True, required=True, max_length=255)
    sku = String(required=True, max_length=100)
    store_id = Identifier(required=True)
    item_name = String(max_length=255)
    raw_stock = Integer(default=0, min_value=0)
    buffer_stock = Integer(default=0, min_value=0)
    observed_at = DateTime()

    @classmethod
    def observe(
        cls,
        sku: str,
        store_id: str,
        raw_stock: int,
        buffer_stock: int = 0,
        observed_at: datetime | None = None,
        item_name: str | None = None,
    ):
        return cls(
            stock_key=make_stock_key(sku, store_id),
            sku=sku,
            store_id=store_id,
            item_name=item_name,
            raw_stock=max(int(raw_stock), 0),
            buffer_stock=max(int(buffer_stock or 0), 0),
            observed_at=observed_at or datetime.now(UTC),
        )

    def overwrite(self, raw_stock: int, buffer_stock: int, observed_at: datetime, item_name: str | None = None):
        """Apply a newer feed observation; older observations are ignored."""
        if self.observed_at and observed_at and observed_at < self.observed_at:
            return False
        self.raw_stock = max(int(raw_stock), 0)
        self.buffer_stock = max(int(buffer_stock or 0), 0)
        self.observed_at = observed_at
        if item_name:
            self.item_name = item_name
        return True


@allocation.aggregate
class HybridStockRecord:
    stock_key = String(identifier=True, required=True, max_length=255)
    sku = String(required=True, max_length=100)
    store_id = Identifier(required=True)
    primary_stock = Integer(default=0, min_value=0)
    backup_stock = Integer(default=0, min_value=0)
    hybrid_stock = Integer(default=0, min_value=0)
    product_id = String(max_length=100)
    variant_id = String(max_length=100)
    product_title = String(max_length=255)
    image_url = String(max_length=500)
    updated_at = DateTime()

    @invariant.post
    def hybrid_stock_is_sum_of_components(self):
        if self.hybrid_stock != (self.primary_stock or 0) + (self.backup_stock or 0):
            raise ValidationError({"hybrid_stock": ["Hybrid stock must equal primary stock plus backup stock"]})

    @classmethod
    def create(
        cls,
        sku: str,
        store_id: str,
        primary_stock: int,
        backup_stock: int = 0,
        product_meta: dict | None = None,
        mode: str = "single",
    ):
        meta = product_meta or {}
        record = cls(
            stock_key=make_stock_key(sku, store_id),
            sku=sku,
            store_id=store_id,
            primary_stock=primary_stock,
            backup_stock=backup_stock,
            hybrid_stock=primary_stock + backup_stock,
            product_id=meta.get("product_id"),
            variant_id=meta.get("variant_id"),
            product_title=meta.get("title"),
            image_url=meta.get("image_url"),
            updated_at=datetime.now(UTC),
        )
        record._announce_refresh(mode)
        return record

    def refresh(self, primary_stock: int, backup_stock: int = 0, mode: str = "single") -> None:
        with atomic_change(self):
            self.primary_stock = primary_stock
            self.backup_stock = backup_stock
            self.hybrid_stock = primary_stock + backup_stock
            self.updated_at = datetime.now(UTC)
        self._announce_refresh(mode)

    def _announce_refresh(self, mode: str) -> None:
        self.raise_(
            HybridStockRefreshed(
                sku=self.sku,
                store_id=str(self.store_id),
                mode=mode,
                primary_stock=self.primary_stock,
                backup_stock=self.backup_stock,
                hybrid_stock=self.hybrid_stock,
                refreshed_at=self.updated_at,
            )
        )

    def restore(self, quantity: int, split_id: str) -> None:
        """Add cancelled quantity back to the buyer-facing figure.

        The quantity lands on ``primary_stock`` so the sum invariant holds.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["Restored quantity must be positive"]})
        with atomic_change(self):
            self.primary_stock = (self.primary_stock or 0) + quantity
            self.hybrid_stock = (self.hybrid_stock or 0) + quantity
            self.updated_at = datetime.now(UTC)
        self.raise_(
            HybridStockRestored(
                sku=self.sku,
                store_id=str(self.store_id),
                quantity=quantity,
                split_id=split_id,
                hybrid_stock=self.hybrid_stock,
                restored_at=self.updated_at,
            )
        )
