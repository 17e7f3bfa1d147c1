"""StockAggregator — maintains HybridStockRecord from StockRecord.

Each sku is refreshed by its own RefreshHybridStock command, so every sku's
upsert commits atomically and a failure on one sku never aborts the rest.
Within a sku, creations and updates are queued and flushed together at the
end, keeping the working set to a single sku's store rows.
"""

import json
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from allocation.domain import allocation
from allocation.stock.stock import HybridStockRecord, StockRecord, make_stock_key
from allocation.stock.strategies import InventoryMode, configured_inventory_mode, strategy_for
from allocation.store.directory import StoreDirectory

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class VariantRef:
    """A product variant to aggregate, with the metadata the storefront displays."""

    sku: str
    product_id: str | None = None
    variant_id: str | None = None
    title: str | None = None
    image_url: str | None = None

    def product_meta(self) -> dict:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "title": self.title,
            "image_url": self.image_url,
        }


@dataclass
class AggregationReport:
    created: int = 0
    updated: int = 0
    processed_skus: list[str] = field(default_factory=list)
    failed_skus: dict[str, str] = field(default_factory=dict)


@allocation.command(part_of="HybridStockRecord")
class RefreshHybridStock:
    sku = String(required=True, max_length=100)
    mode = String(required=True, choices=InventoryMode)
    product_meta = Text()  # JSON dict: product_id, variant_id, title, image_url


@allocation.command_handler(part_of=HybridStockRecord)
class RefreshHybridStockHandler:
    @handle(RefreshHybridStock)
    def refresh_hybrid_stock(self, command):
        mode = InventoryMode(command.mode)
        strategy = strategy_for(mode)
        product_meta = json.loads(command.product_meta) if command.product_meta else {}

        raw_records = current_domain.repository_for(StockRecord)._dao.query.filter(sku=command.sku).limit(None).all().items
        raw_by_store = {str(r.store_id): r.raw_stock or 0 for r in raw_records}
        directory = StoreDirectory()
        hybrid_repo = current_domain.repository_for(HybridStockRecord)

        candidates = []
        for store_id in raw_by_store:
            store = directory.find(store_id)
            if store is None:
                logger.warning("Stock row for unknown store skipped", sku=command.sku, store_id=store_id)
                continue
            candidates.append(store)
        if mode is not InventoryMode.SINGLE:
            # Stores without their own row can still sell borrowed stock
            candidates.extend(s for s in directory.all() if s.is_active and str(s.store_id) not in raw_by_store)

        to_create, to_update = [], []
        for store in candidates:
            store_id = str(store.store_id)
            figures = strategy.figures(store, raw_by_store, directory)
            try:
                record = hybrid_repo.get(make_stock_key(command.sku, store_id))
            except ObjectNotFoundError:
                if figures.hybrid == 0 and store_id not in raw_by_store:
                    continue
                to_create.append(
                    HybridStockRecord.create(
                        sku=command.sku,
                        store_id=store_id,
                        primary_stock=figures.primary,
                        backup_stock=figures.backup,
                        product_meta=product_meta,
                        mode=mode.value,
                    )
                )
            else:
                record.refresh(figures.primary, figures.backup, mode=mode.value)
                to_update.append(record)

        for record in [*to_update, *to_create]:
            hybrid_repo.add(record)

        return {"created": len(to_create), "updated": len(to_update)}


class StockAggregator:
    """Runs RefreshHybridStock over a batch of variants under one inventory mode."""

    def __init__(self, mode: InventoryMode | str | None = None):
        self.mode = InventoryMode(mode) if mode else configured_inventory_mode()

    def aggregate(self, variants: Iterable[VariantRef]) -> AggregationReport:
        report = AggregationReport()
        seen: set[str] = set()
        for variant in variants:
            if variant.sku in seen:
                continue
            seen.add(variant.sku)
            try:
                result = current_domain.process(
                    RefreshHybridStock(
                        sku=variant.sku,
                        mode=self.mode.value,
                        product_meta=json.dumps(variant.product_meta()),
                    ),
                    asynchronous=False,
                )
            except Exception as exc:
                report.failed_skus[variant.sku] = str(exc)
                logger.error(
                    "Hybrid stock refresh failed",
                    sku=variant.sku,
                    mode=self.mode.value,
                    error=str(exc),
                )
                continue

            report.processed_skus.append(variant.sku)
            report.created += result["created"]
            report.updated += result["updated"]

        logger.info(
            "Hybrid stock aggregation finished",
            mode=self.mode.value,
            processed=len(report.processed_skus),
            failed=len(report.failed_skus),
        )
        return report
