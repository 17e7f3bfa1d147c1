"""Tests for the SplitOrder state machine: valid and invalid transitions."""

import pytest
from allocation.split.split_order import (
    HoldStatus,
    SplitOrder,
    SplitOrderStatus,
    split_id_for,
)
from protean.exceptions import ValidationError


def _make_split():
    return SplitOrder.create(
        order_id="ord-001",
        order_number="1001",
        store_id="s1",
        store_code="S1",
        line_items=[{"line_item_id": "li-1", "sku": "SKU-1", "quantity": 2}],
    )


def _advance_to_ready(split):
    split.mark_ready_for_pickup()
    return split


def _advance_to_out_for_delivery(split):
    _advance_to_ready(split)
    split.dispatch()
    return split


def _advance_to_delivered(split):
    _advance_to_out_for_delivery(split)
    split.deliver()
    return split


def _advance_to_on_hold(split):
    split.place_on_hold(HoldStatus.OPEN.value, "Customer asked to wait")
    return split


def _advance_to_confirmed(split):
    split.confirm()
    return split


class TestCreation:
    def test_split_id_is_order_number_and_store_code(self):
        split = _make_split()
        assert split.split_id == "1001-S1"
        assert split.split_id == split_id_for("1001", "S1")

    def test_new_split_starts_in_new_with_a_timestamp(self):
        split = _make_split()
        assert split.status == SplitOrderStatus.NEW
        assert list(split.timestamps) == ["new"]

    def test_line_items_carry_the_store(self):
        split = _make_split()
        assert split.line_items[0].store_id == "s1"
        assert split.total_quantity == 2

    def test_split_without_line_items_is_rejected(self):
        with pytest.raises(ValidationError):
            SplitOrder.create(order_id="ord-001", order_number="1001", store_id="s1", store_code="S1", line_items=[])


class TestValidTransitions:
    def test_new_to_on_hold(self):
        split = _advance_to_on_hold(_make_split())
        assert split.status == SplitOrderStatus.ON_HOLD
        assert split.on_hold_status == "open"
        assert split.on_hold_comment == "Customer asked to wait"

    def test_new_to_confirmed(self):
        split = _advance_to_confirmed(_make_split())
        assert split.status == SplitOrderStatus.CONFIRMED

    def test_on_hold_to_ready_for_pickup_closes_hold(self):
        split = _advance_to_on_hold(_make_split())
        split.mark_ready_for_pickup()
        assert split.status == SplitOrderStatus.READY_FOR_PICKUP
        assert split.on_hold_status == "closed"

    def test_confirmed_to_ready_for_pickup(self):
        split = _advance_to_confirmed(_make_split())
        split.mark_ready_for_pickup()
        assert split.status == SplitOrderStatus.READY_FOR_PICKUP

    def test_full_delivery_path(self):
        split = _advance_to_delivered(_make_split())
        assert split.status == SplitOrderStatus.DELIVERED
        assert split.on_hold_status == "closed"
        assert list(split.timestamps) == ["new", "ready_for_pickup", "out_for_delivery", "delivered"]


class TestInvalidTransitions:
    def test_cannot_dispatch_before_pickup(self):
        split = _make_split()
        with pytest.raises(ValidationError) as exc:
            split.dispatch()
        assert exc.value.messages["order_status"] == ["Cannot transition from new to out_for_delivery"]
        assert split.status == SplitOrderStatus.NEW

    def test_cannot_deliver_from_ready_for_pickup(self):
        split = _advance_to_ready(_make_split())
        with pytest.raises(ValidationError):
            split.deliver()

    def test_cannot_confirm_after_pickup(self):
        split = _advance_to_ready(_make_split())
        with pytest.raises(ValidationError):
            split.confirm()

    def test_cannot_hold_after_confirmation(self):
        split = _advance_to_confirmed(_make_split())
        with pytest.raises(ValidationError):
            split.place_on_hold()

    def test_cannot_hold_twice(self):
        split = _advance_to_on_hold(_make_split())
        with pytest.raises(ValidationError):
            split.place_on_hold()

    def test_delivered_is_terminal(self):
        split = _advance_to_delivered(_make_split())
        for action in (split.cancel, split.dispatch, split.mark_ready_for_pickup, split.confirm):
            with pytest.raises(ValidationError):
                action()
        assert split.status == SplitOrderStatus.DELIVERED

    def test_cancelled_is_terminal(self):
        split = _make_split()
        split.cancel("Out of stock")
        with pytest.raises(ValidationError):
            split.cancel("again")
        with pytest.raises(ValidationError):
            split.mark_ready_for_pickup()
        assert split.status == SplitOrderStatus.CANCELLED


class TestCancellationReachability:
    @pytest.mark.parametrize(
        "advance",
        [
            lambda s: s,
            _advance_to_on_hold,
            _advance_to_confirmed,
            _advance_to_ready,
            _advance_to_out_for_delivery,
        ],
        ids=["new", "on_hold", "confirmed", "ready_for_pickup", "out_for_delivery"],
    )
    def test_cancel_from_every_non_terminal_status(self, advance):
        split = advance(_make_split())
        previous = split.order_status
        split.cancel("Customer request")

        assert split.status == SplitOrderStatus.CANCELLED
        assert split.on_hold_status == "closed"
        assert "cancel" in split.timestamps
        event = split._events[-1]
        assert event.__class__.__name__ == "SplitOrderCancelled"
        assert event.previous_status == previous


class TestMonotonicity:
    def test_no_transition_moves_backward(self):
        from allocation.split.split_order import _VALID_TRANSITIONS, STATUS_RANK

        for source, targets in _VALID_TRANSITIONS.items():
            for target in targets:
                assert STATUS_RANK[target] > STATUS_RANK[source], f"{source} -> {target}"

    def test_timestamps_are_only_appended(self):
        split = _advance_to_on_hold(_make_split())
        stamped = dict(split.timestamps)
        split.mark_ready_for_pickup()
        for key, value in stamped.items():
            assert split.timestamps[key] == value
        assert len(split.timestamps) == len(stamped) + 1


class TestHoldStatus:
    def test_toggle_hold_status_while_on_hold(self):
        split = _advance_to_on_hold(_make_split())
        split.update_hold_status("closed")
        assert split.on_hold_status == "closed"
        assert split.status == SplitOrderStatus.ON_HOLD
        split.update_hold_status("open")
        assert split.on_hold_status == "open"

    def test_hold_status_update_requires_on_hold(self):
        split = _make_split()
        with pytest.raises(ValidationError):
            split.update_hold_status("closed")

    def test_unknown_hold_status_rejected(self):
        split = _advance_to_on_hold(_make_split())
        with pytest.raises(ValueError):
            split.update_hold_status("paused")


class TestCarrierFields:
    def test_delivery_task_requires_ready_for_pickup(self):
        split = _make_split()
        with pytest.raises(ValidationError):
            split.record_delivery_task("TASK-1", "true", "ACCEPTED", "ok")

    def test_active_task_until_carrier_cancels(self):
        split = _advance_to_ready(_make_split())
        split.record_delivery_task("TASK-1", "true", "ACCEPTED", "ok")
        assert split.has_active_task
        split.record_task_cancellation("TASK-1", "CANCELLED", "Task cancelled")
        assert not split.has_active_task

    def test_payout_is_rounded(self):
        split = _advance_to_ready(_make_split())
        split.record_payout(49.999, 9.004, 59.0049)
        assert split.tpl_payout_price == 50.0
        assert split.tpl_payout_tax == 9.0
        assert split.tpl_payout_total == 59.0

    def test_logistics_error_leaves_status(self):
        split = _advance_to_ready(_make_split())
        split.record_logistics_error("Location not serviceable")
        assert split.status == SplitOrderStatus.READY_FOR_PICKUP
        assert split.tpl_message == "Location not serviceable"
        assert split.tpl_message_level == "error"


class TestStockCompensationFlag:
    def test_only_cancelled_splits_compensate(self):
        split = _make_split()
        with pytest.raises(ValidationError):
            split.mark_stock_compensated()

    def test_compensation_happens_once(self):
        split = _make_split()
        split.cancel()
        split.mark_stock_compensated()
        assert split.stock_compensated is True
        with pytest.raises(ValidationError):
            split.mark_stock_compensated()


class TestRefreshLineItems:
    def test_refresh_replaces_line_items(self):
        split = _make_split()
        split.refresh_line_items([{"line_item_id": "li-2", "sku": "SKU-2", "quantity": 5}])
        assert [item.sku for item in split.line_items] == ["SKU-2"]
        assert split.total_quantity == 5

    def test_refresh_only_while_new(self):
        split = _advance_to_confirmed(_make_split())
        with pytest.raises(ValidationError):
            split.refresh_line_items([{"line_item_id": "li-2", "sku": "SKU-2", "quantity": 5}])
