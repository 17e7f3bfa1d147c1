"""Tests for the allocation planner strategies.

Planning is pure, so stores are built in memory and stock comes from a dict.
"""

import pytest
from allocation.split.planner import (
    PlanLine,
    PlanningContext,
    SplitMode,
    plan_allocation,
)
from allocation.store.directory import StoreDirectory
from allocation.store.store import Store
from protean.exceptions import ObjectNotFoundError, ValidationError


def _store(store_id, store_code, cluster=None, backup_store_id=None, pincodes=(), status="Active"):
    store = Store.register(
        store_id=store_id,
        store_code=store_code,
        store_name=f"Store {store_code}",
        cluster=cluster,
        backup_store_id=backup_store_id,
        pincodes=list(pincodes),
    )
    if status != "Active":
        store.change_status(status)
    return store


def _context(stores, stock, lines, pincode="560001", manual_store_id=None):
    return PlanningContext(
        order_number="1001",
        lines=[PlanLine(*line) for line in lines],
        pincode=pincode,
        directory=StoreDirectory(stores=stores),
        stock_lookup=lambda sku, store_id: stock.get((sku, store_id), 0),
        manual_store_id=manual_store_id,
    )


def _quantities(plan):
    return {draft.store_code: {i["sku"]: i["quantity"] for i in draft.line_items} for draft in plan.drafts}


class TestClusterStrategy:
    def test_highest_coverage_store_ships_first(self):
        stores = [
            _store("s1", "S1", cluster="C", pincodes=["560001"]),
            _store("s2", "S2", cluster="C", pincodes=["560002"]),
        ]
        context = _context(stores, {("SKU-1", "s1"): 2, ("SKU-1", "s2"): 5}, [("li-1", "SKU-1", 6)])

        plan = plan_allocation(context, SplitMode.CLUSTER)

        assert [d.store_code for d in plan.drafts] == ["S2", "S1"]
        assert _quantities(plan) == {"S2": {"SKU-1": 5}, "S1": {"SKU-1": 1}}
        assert plan.allocated_by_sku() == {"SKU-1": 6}
        assert plan.fully_covered

    def test_single_store_covers_everything(self):
        stores = [
            _store("s1", "S1", cluster="C", pincodes=["560001"]),
            _store("s2", "S2", cluster="C"),
        ]
        context = _context(
            stores,
            {("SKU-1", "s1"): 1, ("SKU-1", "s2"): 10, ("SKU-2", "s2"): 10},
            [("li-1", "SKU-1", 3), ("li-2", "SKU-2", 2)],
        )

        plan = plan_allocation(context, "cluster")

        assert [d.split_id for d in plan.drafts] == ["1001-S2"]
        assert plan.drafts[0].total_quantity == 5

    def test_draft_items_keep_order_line_order(self):
        stores = [_store("s1", "S1", cluster="C", pincodes=["560001"])]
        context = _context(
            stores,
            {("SKU-1", "s1"): 5, ("SKU-2", "s1"): 5},
            [("li-1", "SKU-1", 1), ("li-2", "SKU-2", 1)],
        )

        plan = plan_allocation(context, SplitMode.CLUSTER)

        assert [i["line_item_id"] for i in plan.drafts[0].line_items] == ["li-1", "li-2"]

    def test_inactive_cluster_members_are_skipped(self):
        stores = [
            _store("s1", "S1", cluster="C", pincodes=["560001"]),
            _store("s2", "S2", cluster="C", status="Inactive"),
        ]
        context = _context(stores, {("SKU-1", "s1"): 1, ("SKU-1", "s2"): 10}, [("li-1", "SKU-1", 4)])

        plan = plan_allocation(context, SplitMode.CLUSTER)

        assert _quantities(plan) == {"S1": {"SKU-1": 1}}
        assert [g.missing for g in plan.gaps] == [3]

    def test_store_without_cluster_ships_alone(self):
        stores = [_store("s1", "S1", pincodes=["560001"])]
        context = _context(stores, {("SKU-1", "s1"): 4}, [("li-1", "SKU-1", 2)])

        plan = plan_allocation(context, SplitMode.CLUSTER)

        assert _quantities(plan) == {"S1": {"SKU-1": 2}}


class TestPrimaryWithBackupStrategy:
    def test_shortfall_goes_to_backup(self):
        stores = [
            _store("b", "B", pincodes=["560011"]),
            _store("p", "P", backup_store_id="b", pincodes=["560010"]),
        ]
        context = _context(stores, {("SKU-1", "p"): 2, ("SKU-1", "b"): 10}, [("li-1", "SKU-1", 5)], pincode="560010")

        plan = plan_allocation(context, SplitMode.PRIMARY_WITH_BACKUP)

        assert _quantities(plan) == {"P": {"SKU-1": 2}, "B": {"SKU-1": 3}}
        assert plan.fully_covered

    def test_backup_is_capped_at_its_own_stock(self):
        stores = [
            _store("b", "B"),
            _store("p", "P", backup_store_id="b", pincodes=["560010"]),
        ]
        context = _context(stores, {("SKU-1", "p"): 1, ("SKU-1", "b"): 2}, [("li-1", "SKU-1", 5)], pincode="560010")

        plan = plan_allocation(context, SplitMode.PRIMARY_WITH_BACKUP)

        assert _quantities(plan) == {"P": {"SKU-1": 1}, "B": {"SKU-1": 2}}
        assert plan.gaps[0].to_dict() == {"line_item_id": "li-1", "sku": "SKU-1", "requested": 5, "allocated": 3}

    def test_inactive_backup_is_ignored(self):
        stores = [
            _store("b", "B", status="Inactive"),
            _store("p", "P", backup_store_id="b", pincodes=["560010"]),
        ]
        context = _context(stores, {("SKU-1", "p"): 2, ("SKU-1", "b"): 10}, [("li-1", "SKU-1", 5)], pincode="560010")

        plan = plan_allocation(context, SplitMode.PRIMARY_WITH_BACKUP)

        assert _quantities(plan) == {"P": {"SKU-1": 2}}
        assert plan.gaps[0].missing == 3

    def test_primary_alone_when_it_covers(self):
        stores = [
            _store("b", "B"),
            _store("p", "P", backup_store_id="b", pincodes=["560010"]),
        ]
        context = _context(stores, {("SKU-1", "p"): 9, ("SKU-1", "b"): 10}, [("li-1", "SKU-1", 5)], pincode="560010")

        plan = plan_allocation(context, SplitMode.PRIMARY_WITH_BACKUP)

        assert _quantities(plan) == {"P": {"SKU-1": 5}}


class TestPrimaryStrategy:
    def test_partial_coverage_is_not_an_error(self):
        stores = [_store("s1", "S1", pincodes=["560001"])]
        context = _context(stores, {("SKU-1", "s1"): 3}, [("li-1", "SKU-1", 5)])

        plan = plan_allocation(context, SplitMode.PRIMARY)

        assert _quantities(plan) == {"S1": {"SKU-1": 3}}
        assert not plan.fully_covered
        assert plan.gaps[0].missing == 2

    def test_no_stock_means_no_splits(self):
        stores = [_store("s1", "S1", pincodes=["560001"])]
        context = _context(stores, {}, [("li-1", "SKU-1", 5)])

        plan = plan_allocation(context, SplitMode.PRIMARY)

        assert plan.drafts == []
        assert plan.gaps[0].allocated == 0

    def test_unresolvable_pincode_leaves_everything_as_gaps(self):
        stores = [_store("s1", "S1", pincodes=["560001"])]
        context = _context(stores, {("SKU-1", "s1"): 5}, [("li-1", "SKU-1", 2)], pincode="999999")

        plan = plan_allocation(context, SplitMode.PRIMARY)

        assert plan.drafts == []
        assert [g.line_item_id for g in plan.gaps] == ["li-1"]

    def test_zero_quantity_lines_are_ignored(self):
        stores = [_store("s1", "S1", pincodes=["560001"])]
        context = _context(stores, {("SKU-1", "s1"): 5}, [("li-1", "SKU-1", 1), ("li-2", "SKU-2", 0)])

        plan = plan_allocation(context, SplitMode.PRIMARY)

        assert _quantities(plan) == {"S1": {"SKU-1": 1}}
        assert plan.fully_covered


class TestManualStrategy:
    def test_named_store_ships_everything(self):
        stores = [_store("s1", "S1"), _store("s2", "S2")]
        context = _context(stores, {}, [("li-1", "SKU-1", 3)], manual_store_id="s2")

        plan = plan_allocation(context, SplitMode.MANUAL)

        assert _quantities(plan) == {"S2": {"SKU-1": 3}}
        assert plan.fully_covered

    def test_store_is_required(self):
        context = _context([_store("s1", "S1")], {}, [("li-1", "SKU-1", 3)])
        with pytest.raises(ValidationError):
            plan_allocation(context, SplitMode.MANUAL)

    def test_unknown_store_is_not_found(self):
        context = _context([_store("s1", "S1")], {}, [("li-1", "SKU-1", 3)], manual_store_id="nope")
        with pytest.raises(ObjectNotFoundError):
            plan_allocation(context, SplitMode.MANUAL)


class TestPlanInvariants:
    @pytest.mark.parametrize("mode", [SplitMode.PRIMARY, SplitMode.PRIMARY_WITH_BACKUP, SplitMode.CLUSTER])
    @pytest.mark.parametrize("requested", [1, 4, 7, 12, 20])
    def test_allocation_never_exceeds_request_or_stock(self, mode, requested):
        stores = [
            _store("s2", "S2", cluster="C"),
            _store("s1", "S1", cluster="C", backup_store_id="s2", pincodes=["560001"]),
            _store("s3", "S3", cluster="C"),
        ]
        stock = {
            ("SKU-1", "s1"): 3,
            ("SKU-1", "s2"): 4,
            ("SKU-1", "s3"): 5,
            ("SKU-2", "s1"): 1,
            ("SKU-2", "s3"): 2,
        }
        context = _context(stores, stock, [("li-1", "SKU-1", requested), ("li-2", "SKU-2", requested)])

        plan = plan_allocation(context, mode)

        allocated = plan.allocated_by_sku()
        assert allocated.get("SKU-1", 0) <= requested
        assert allocated.get("SKU-2", 0) <= requested
        for draft in plan.drafts:
            for item in draft.line_items:
                assert 0 < item["quantity"] <= stock[(item["sku"], draft.store_id)]
        for gap in plan.gaps:
            assert gap.allocated == allocated.get(gap.sku, 0)
        assert len({d.split_id for d in plan.drafts}) == len(plan.drafts)


class TestRepeatedSkuLines:
    """Two lines for the same sku draw on one store's stock together."""

    def test_cluster_does_not_overdraw_a_store(self):
        stores = [
            _store("s1", "S1", cluster="C", pincodes=["560001"]),
            _store("s2", "S2", cluster="C"),
        ]
        context = _context(
            stores,
            {("SKU-1", "s1"): 3, ("SKU-1", "s2"): 2},
            [("li-1", "SKU-1", 3), ("li-2", "SKU-1", 3)],
        )

        plan = plan_allocation(context, SplitMode.CLUSTER)

        per_store = {d.store_code: d.total_quantity for d in plan.drafts}
        assert per_store == {"S1": 3, "S2": 2}
        assert plan.allocated_by_sku() == {"SKU-1": 5}
        assert [(g.line_item_id, g.missing) for g in plan.gaps] == [("li-1", 1)]

    def test_primary_does_not_overdraw_a_store(self):
        stores = [_store("p", "P", pincodes=["560001"])]
        context = _context(
            stores,
            {("SKU-1", "p"): 4},
            [("li-1", "SKU-1", 3), ("li-2", "SKU-1", 3)],
        )

        plan = plan_allocation(context, SplitMode.PRIMARY)

        assert plan.allocated_by_sku() == {"SKU-1": 4}
        assert plan.drafts[0].line_items == [
            {"line_item_id": "li-1", "sku": "SKU-1", "quantity": 3},
            {"line_item_id": "li-2", "sku": "SKU-1", "quantity": 1},
        ]
        assert [(g.line_item_id, g.missing) for g in plan.gaps] == [("li-2", 2)]
