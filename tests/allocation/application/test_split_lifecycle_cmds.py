"""Application tests for split order lifecycle actions and their side effects."""

import pytest
from allocation.errors import TransientUpstreamError
from allocation.split import actions
from allocation.split.split_order import SplitOrder
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture()
def split_id(cluster_stores, put_stock, order_source, logistics, sms, email):
    """One split, 1001-S1, for order ord-1 in status new."""
    put_stock("SKU-1", "s1", 10)
    order_source.add_order(
        "ord-1",
        "1001",
        [{"line_item_id": "li-1", "sku": "SKU-1", "quantity": 2}],
        pincode="560001",
    )
    actions.split_order("ord-1", split_mode="cluster")
    sms.sent_messages.clear()
    email.sent_emails.clear()
    return "1001-S1"


def _split(split_id):
    return current_domain.repository_for(SplitOrder).get(split_id)


class TestHold:
    def test_place_on_hold_notifies_customer(self, split_id, sms, email):
        actions.place_on_hold(split_id, comment="Awaiting customer call")

        split = _split(split_id)
        assert split.order_status == "on_hold"
        assert split.on_hold_status == "open"
        assert split.on_hold_comment == "Awaiting customer call"
        assert "on_hold" in split.timestamps
        assert len(sms.sent_messages) == 1
        assert len(email.sent_emails) == 1

    def test_hold_status_toggles(self, split_id):
        actions.place_on_hold(split_id)
        actions.update_hold_status(split_id, "closed")

        split = _split(split_id)
        assert split.order_status == "on_hold"
        assert split.on_hold_status == "closed"

    def test_hold_status_requires_hold(self, split_id):
        with pytest.raises(ValidationError):
            actions.update_hold_status(split_id, "closed")

    def test_unknown_split(self, split_id):
        with pytest.raises(ObjectNotFoundError):
            actions.place_on_hold("9999-S9")


class TestConfirm:
    def test_confirm_from_hold_closes_hold(self, split_id):
        actions.place_on_hold(split_id)
        actions.confirm(split_id)

        split = _split(split_id)
        assert split.order_status == "confirmed"
        assert split.on_hold_status == "closed"

    def test_confirm_twice_is_rejected(self, split_id):
        actions.confirm(split_id)
        with pytest.raises(ValidationError):
            actions.confirm(split_id)


class TestReadyForPickup:
    def test_books_delivery_task(self, split_id, logistics):
        outcome = actions.mark_ready_for_pickup(split_id)

        assert outcome.success is True
        split = _split(split_id)
        assert split.order_status == "ready_for_pickup"
        assert split.tpl_task_id == outcome.task_id
        assert split.tpl_status == "true"
        assert split.tpl_status_code == "ACCEPTED"
        assert split.tpl_payout_total == 59.0
        assert logistics.created_tasks[0]["split_id"] == split_id
        assert logistics.created_tasks[0]["store_id"] == "s1"

    def test_unserviceable_location_annotates_split(self, split_id, logistics):
        logistics.configure(serviceable=False, failure_reason="Location not serviceable")

        outcome = actions.mark_ready_for_pickup(split_id)

        assert outcome.success is False
        assert outcome.error == "Location not serviceable"
        split = _split(split_id)
        assert split.order_status == "ready_for_pickup"
        assert split.tpl_task_id is None
        assert split.tpl_message == "Location not serviceable"
        assert split.tpl_message_level == "error"
        assert logistics.created_tasks == []

    def test_rejected_task_annotates_split(self, split_id, logistics):
        logistics.configure(accept_tasks=False, failure_reason="No riders nearby")

        outcome = actions.mark_ready_for_pickup(split_id)

        assert outcome.success is False
        assert _split(split_id).tpl_message == "No riders nearby"

    def test_unreachable_serviceability_is_not_retried(self, split_id, logistics):
        logistics.configure(transient_failures=1)

        outcome = actions.mark_ready_for_pickup(split_id)

        assert outcome.success is False
        assert outcome.error.startswith("Serviceability check failed")
        assert logistics.serviceability_checks == []

    def test_task_creation_retried_on_transient_failure(self, split_id, logistics, monkeypatch):
        original = logistics.create_task
        calls = []

        def flaky(request):
            calls.append(request.split_id)
            if len(calls) < 3:
                raise TransientUpstreamError("logistics", "create_task timed out")
            return original(request)

        monkeypatch.setattr(logistics, "create_task", flaky)

        outcome = actions.mark_ready_for_pickup(split_id)

        assert outcome.success is True
        assert len(calls) == 3
        assert _split(split_id).tpl_task_id == outcome.task_id

    def test_task_creation_gives_up_after_max_attempts(self, split_id, logistics, monkeypatch):
        calls = []

        def always_times_out(request):
            calls.append(request.split_id)
            raise TransientUpstreamError("logistics", "create_task timed out")

        monkeypatch.setattr(logistics, "create_task", always_times_out)

        outcome = actions.mark_ready_for_pickup(split_id)

        assert outcome.success is False
        assert outcome.error.startswith("Task creation failed")
        assert len(calls) == 3
        assert _split(split_id).order_status == "ready_for_pickup"

    def test_booking_can_be_retried_later(self, split_id, logistics):
        logistics.configure(serviceable=False)
        actions.mark_ready_for_pickup(split_id)

        logistics.configure(serviceable=True)
        outcome = actions.book_delivery_task(split_id)

        assert outcome.success is True
        assert _split(split_id).has_active_task

    def test_booking_twice_keeps_first_task(self, split_id, logistics):
        first = actions.mark_ready_for_pickup(split_id)
        second = actions.book_delivery_task(split_id)

        assert second.task_id == first.task_id
        assert len(logistics.created_tasks) == 1

    def test_booking_requires_ready_for_pickup(self, split_id):
        with pytest.raises(ValidationError):
            actions.book_delivery_task(split_id)


class TestDelivery:
    def test_dispatch_confirms_fulfillment_and_notifies(self, split_id, order_source, sms, email):
        actions.mark_ready_for_pickup(split_id)
        actions.dispatch(split_id)

        assert _split(split_id).order_status == "out_for_delivery"
        assert order_source.confirmed_fulfillments == [split_id]
        assert len(sms.sent_messages) == 1
        assert len(email.sent_emails) == 1

    def test_deliver_records_every_timestamp(self, split_id, order_source):
        actions.mark_ready_for_pickup(split_id)
        actions.dispatch(split_id)
        actions.deliver(split_id)

        split = _split(split_id)
        assert split.order_status == "delivered"
        assert list(split.timestamps) == ["new", "ready_for_pickup", "out_for_delivery", "delivered"]
        assert order_source.confirmed_fulfillments == [split_id, split_id]

    def test_dispatch_before_pickup_is_rejected(self, split_id, order_source):
        with pytest.raises(ValidationError):
            actions.dispatch(split_id)
        assert order_source.confirmed_fulfillments == []

    def test_order_source_outage_does_not_undo_dispatch(self, split_id, order_source):
        actions.mark_ready_for_pickup(split_id)
        order_source.configure(should_succeed=False)

        actions.dispatch(split_id)

        assert _split(split_id).order_status == "out_for_delivery"
