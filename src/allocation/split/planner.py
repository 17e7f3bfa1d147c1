"""AllocationPlanner — partitions an order's line items across stores.

One strategy per split mode. Every strategy shares the same skeleton:

1. resolve the candidate stores for the shipping pincode,
2. allocate each line item's quantity across those candidates,
3. turn every candidate that received a non-zero quantity into a SplitDraft,
4. report whatever could not be covered as gaps.

Planning is pure: stock is read through ``PlanningContext.stock_lookup`` and
nothing is persisted here. Partial coverage is never an error.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import ValidationError

from allocation.split.split_order import split_id_for
from allocation.store.directory import StoreDirectory
from allocation.store.store import Store


class SplitMode(Enum):
    MANUAL = "manual"
    PRIMARY = "primary"
    PRIMARY_WITH_BACKUP = "primary_with_backup"
    CLUSTER = "cluster"


def configured_split_mode() -> SplitMode:
    return SplitMode(os.environ.get("SPLIT_MODE", SplitMode.CLUSTER.value))


@dataclass(frozen=True)
class PlanLine:
    line_item_id: str
    sku: str
    quantity: int


@dataclass
class SplitDraft:
    order_number: str
    store_id: str
    store_code: str
    line_items: list[dict] = field(default_factory=list)

    @property
    def split_id(self) -> str:
        return split_id_for(self.order_number, self.store_code)

    @property
    def total_quantity(self) -> int:
        return sum(item["quantity"] for item in self.line_items)


@dataclass(frozen=True)
class Gap:
    line_item_id: str
    sku: str
    requested: int
    allocated: int

    @property
    def missing(self) -> int:
        return self.requested - self.allocated

    def to_dict(self) -> dict:
        return {
            "line_item_id": self.line_item_id,
            "sku": self.sku,
            "requested": self.requested,
            "allocated": self.allocated,
        }


@dataclass
class AllocationPlan:
    mode: SplitMode
    drafts: list[SplitDraft] = field(default_factory=list)
    gaps: list[Gap] = field(default_factory=list)

    @property
    def fully_covered(self) -> bool:
        return not self.gaps

    def allocated_by_sku(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for draft in self.drafts:
            for item in draft.line_items:
                totals[item["sku"]] = totals.get(item["sku"], 0) + item["quantity"]
        return totals


StockLookup = Callable[[str, str], int]


@dataclass
class PlanningContext:
    order_number: str
    lines: list[PlanLine]
    pincode: str | None
    directory: StoreDirectory
    stock_lookup: StockLookup
    manual_store_id: str | None = None

    def stock(self, sku: str, store: Store) -> int:
        return max(int(self.stock_lookup(sku, str(store.store_id)) or 0), 0)


# Allocation buckets: store_id -> {line_item_id: quantity}
Buckets = dict[str, dict[str, int]]


class SplitStrategy(ABC):
    mode: SplitMode

    @abstractmethod
    def candidates(self, context: PlanningContext) -> list[Store]:
        """Stores eligible to ship this order, in preference order."""

    @abstractmethod
    def allocate(self, context: PlanningContext, stores: list[Store], remaining: dict[str, int]) -> Buckets:
        """Assign quantities to stores, decrementing ``remaining`` in place."""

    def plan(self, context: PlanningContext) -> AllocationPlan:
        lines = [line for line in context.lines if line.quantity > 0]
        remaining = {line.line_item_id: line.quantity for line in lines}

        stores = self.candidates(context) if lines else []
        buckets = self.allocate(context, stores, remaining) if stores else {}

        plan = AllocationPlan(mode=self.mode)
        by_id = {str(s.store_id): s for s in stores}
        for store_id, bucket in buckets.items():
            items = [
                {"line_item_id": line.line_item_id, "sku": line.sku, "quantity": bucket[line.line_item_id]}
                for line in lines
                if bucket.get(line.line_item_id, 0) > 0
            ]
            if items:
                store = by_id[store_id]
                plan.drafts.append(
                    SplitDraft(
                        order_number=str(context.order_number),
                        store_id=store_id,
                        store_code=store.store_code,
                        line_items=items,
                    )
                )

        for line in lines:
            if remaining[line.line_item_id] > 0:
                plan.gaps.append(
                    Gap(
                        line_item_id=line.line_item_id,
                        sku=line.sku,
                        requested=line.quantity,
                        allocated=line.quantity - remaining[line.line_item_id],
                    )
                )
        return plan

    @staticmethod
    def _lines_by_id(context: PlanningContext) -> dict[str, PlanLine]:
        return {line.line_item_id: line for line in context.lines}


class ManualStrategy(SplitStrategy):
    """The caller names the store; it ships everything."""

    mode = SplitMode.MANUAL

    def candidates(self, context):
        if not context.manual_store_id:
            raise ValidationError({"store_id": ["Manual split requires a store"]})
        return [context.directory.get(context.manual_store_id)]

    def allocate(self, context, stores, remaining):
        store_id = str(stores[0].store_id)
        bucket = dict(remaining)
        for line_item_id in remaining:
            remaining[line_item_id] = 0
        return {store_id: bucket}


class PrimaryStrategy(SplitStrategy):
    """The store servicing the pincode ships what it holds."""

    mode = SplitMode.PRIMARY

    def candidates(self, context):
        primary = context.directory.resolve_pincode(context.pincode) if context.pincode else None
        return [primary] if primary else []

    def allocate(self, context, stores, remaining):
        return _fill_in_order(context, stores, remaining)


class PrimaryWithBackupStrategy(PrimaryStrategy):
    """Primary store first, shortfall to its designated backup."""

    mode = SplitMode.PRIMARY_WITH_BACKUP

    def candidates(self, context):
        stores = super().candidates(context)
        if stores:
            backup = context.directory.backup_for(stores[0])
            if backup is not None:
                stores.append(backup)
        return stores


class ClusterStrategy(SplitStrategy):
    """Highest-coverage store in the pincode's cluster first."""

    mode = SplitMode.CLUSTER

    def candidates(self, context):
        primary = context.directory.resolve_pincode(context.pincode) if context.pincode else None
        if primary is None:
            return []
        members = context.directory.cluster_members(primary.cluster)
        return members or [primary]

    def allocate(self, context, stores, remaining):
        lines = self._lines_by_id(context)
        wanted: dict[str, int] = {}
        for line_item_id, qty in remaining.items():
            sku = lines[line_item_id].sku
            wanted[sku] = wanted.get(sku, 0) + qty
        coverage = {
            str(store.store_id): sum(min(qty, context.stock(sku, store)) for sku, qty in wanted.items())
            for store in stores
        }
        # sorted() is stable, so equal coverage keeps directory order
        ranked = sorted(stores, key=lambda s: coverage[str(s.store_id)], reverse=True)

        buckets: Buckets = {}
        for store in ranked:
            if not any(remaining.values()):
                break
            _take_from(context, store, reversed(list(remaining)), lines, remaining, buckets)
        return buckets


def _fill_in_order(context: PlanningContext, stores: list[Store], remaining: dict[str, int]) -> Buckets:
    """Give each store, in order, as much of every line as its stock covers."""
    lines = SplitStrategy._lines_by_id(context)
    buckets: Buckets = {}
    for store in stores:
        _take_from(context, store, list(remaining), lines, remaining, buckets)
    return buckets


def _take_from(context, store, line_item_ids, lines, remaining, buckets) -> None:
    """Fill ``line_item_ids`` from one store; lines sharing a sku share its stock."""
    bucket = buckets.setdefault(str(store.store_id), {})
    left: dict[str, int] = {}
    for line_item_id in line_item_ids:
        needed = remaining[line_item_id]
        if needed == 0:
            continue
        sku = lines[line_item_id].sku
        if sku not in left:
            left[sku] = context.stock(sku, store)
        take = min(needed, left[sku])
        if take > 0:
            bucket[line_item_id] = take
            remaining[line_item_id] = needed - take
            left[sku] -= take


_STRATEGIES: dict[SplitMode, SplitStrategy] = {
    SplitMode.MANUAL: ManualStrategy(),
    SplitMode.PRIMARY: PrimaryStrategy(),
    SplitMode.PRIMARY_WITH_BACKUP: PrimaryWithBackupStrategy(),
    SplitMode.CLUSTER: ClusterStrategy(),
}


def strategy_for(mode: SplitMode | str) -> SplitStrategy:
    return _STRATEGIES[SplitMode(mode)]


def plan_allocation(context: PlanningContext, mode: SplitMode | str) -> AllocationPlan:
    return strategy_for(mode).plan(context)
