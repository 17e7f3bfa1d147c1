"""Stock aggregation strategies — one implementation per inventory mode.

Every strategy answers the same question for one (store, sku): how much of
the hybrid figure is the store's own ("primary") stock and how much is
borrowed ("backup"). The shared walk/queue/upsert skeleton lives in
``allocation.stock.aggregator``.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from allocation.store.directory import StoreDirectory
from allocation.store.store import Store


class InventoryMode(Enum):
    SINGLE = "single"
    PRIMARY_WITH_BACKUP = "primary_with_backup"
    CLUSTER = "cluster"


@dataclass(frozen=True)
class StockFigures:
    primary: int
    backup: int = 0

    @property
    def hybrid(self) -> int:
        return self.primary + self.backup


class AggregationStrategy(ABC):
    mode: InventoryMode

    @abstractmethod
    def figures(self, store: Store, raw_by_store: dict[str, int], directory: StoreDirectory) -> StockFigures:
        """Compute the stock figures for ``store`` from raw counts keyed by store id."""
        ...


class SingleStoreStrategy(AggregationStrategy):
    mode = InventoryMode.SINGLE

    def figures(self, store, raw_by_store, directory):
        return StockFigures(primary=raw_by_store.get(str(store.store_id), 0))


class PrimaryWithBackupStrategy(AggregationStrategy):
    """Own stock plus the raw stock of the designated (active) backup store."""

    mode = InventoryMode.PRIMARY_WITH_BACKUP

    def figures(self, store, raw_by_store, directory):
        own = raw_by_store.get(str(store.store_id), 0)
        backup_store = directory.backup_for(store)
        backup = raw_by_store.get(str(backup_store.store_id), 0) if backup_store else 0
        return StockFigures(primary=own, backup=backup)


class ClusterStrategy(AggregationStrategy):
    """Primary stock is the pooled raw stock of every active store in the cluster."""

    mode = InventoryMode.CLUSTER

    def figures(self, store, raw_by_store, directory):
        store_id = str(store.store_id)
        member_ids = {str(s.store_id) for s in directory.cluster_members(store.cluster)}
        member_ids.add(store_id)
        pooled = sum(raw_by_store.get(member_id, 0) for member_id in member_ids)
        return StockFigures(primary=pooled)


_STRATEGIES: dict[InventoryMode, AggregationStrategy] = {
    InventoryMode.SINGLE: SingleStoreStrategy(),
    InventoryMode.PRIMARY_WITH_BACKUP: PrimaryWithBackupStrategy(),
    InventoryMode.CLUSTER: ClusterStrategy(),
}


def strategy_for(mode: InventoryMode | str) -> AggregationStrategy:
    return _STRATEGIES[InventoryMode(mode)]


def configured_inventory_mode() -> InventoryMode:
    """Mode from the INVENTORY_MODE environment variable (default: single)."""
    return InventoryMode(os.environ.get("INVENTORY_MODE", InventoryMode.SINGLE.value))
