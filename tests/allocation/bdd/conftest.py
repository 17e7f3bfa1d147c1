"""Shared BDD fixtures and step definitions for store allocation."""

import pytest
from allocation.split import actions
from allocation.split.order_info import OrderInfo
from allocation.split.split_order import SplitOrder
from allocation.stock.stock import HybridStockRecord, make_stock_key
from protean import current_domain
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('store "{store_id}" coded "{store_code}" servicing pincode "{pincode:d}"'))
def store_servicing(make_store, store_id, store_code, pincode):
    make_store(store_id, store_code, pincodes=[str(pincode)])


@given(parsers.cfparse('cluster "{cluster}" store "{store_id}" coded "{store_code}" servicing pincode "{pincode:d}"'))
def clustered_store(make_store, store_id, store_code, cluster, pincode):
    make_store(store_id, store_code, cluster=cluster, pincodes=[str(pincode)])


@given(
    parsers.cfparse(
        'backed-up store "{store_id}" coded "{store_code}" with backup "{backup_store_id}" servicing pincode "{pincode:d}"'
    )
)
def backed_up_store(make_store, store_id, store_code, backup_store_id, pincode):
    make_store(store_id, store_code, backup_store_id=backup_store_id, pincodes=[str(pincode)])


@given(parsers.cfparse('store "{store_id}" holds {quantity:d} units of "{sku}"'))
def store_holds(put_stock, store_id, quantity, sku):
    put_stock(sku, store_id, quantity)


@given(parsers.cfparse('store "{store_id}" shows {quantity:d} units of "{sku}" to buyers'))
def store_shows(store_id, quantity, sku):
    record = HybridStockRecord.create(sku=sku, store_id=store_id, primary_stock=quantity)
    current_domain.repository_for(HybridStockRecord).add(record)


@given(parsers.cfparse('order "{order_number}" requests {quantity:d} units of "{sku}" for pincode "{pincode:d}"'))
def order_requests(order_source, logistics, order_number, quantity, sku, pincode):
    order_source.add_order(
        f"ord-{order_number}",
        order_number,
        [{"line_item_id": "li-1", "sku": sku, "quantity": quantity}],
        pincode=str(pincode),
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the order is split in "{split_mode}" mode'), target_fixture="split_result")
@when(parsers.cfparse('the order is split in "{split_mode}" mode'), target_fixture="split_result")
def split_the_order(order_source, split_mode):
    order_id = next(iter(order_source.orders))
    return actions.split_order(order_id, split_mode=split_mode)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('split "{split_id}" ships {quantity:d} units of "{sku}"'))
def split_ships(split_id, quantity, sku):
    split = current_domain.repository_for(SplitOrder).get(split_id)
    shipped = sum(item.quantity for item in split.line_items if item.sku == sku)
    assert shipped == quantity


@then(parsers.cfparse('split "{split_id}" is in status "{status}"'))
def split_in_status(split_id, status):
    assert current_domain.repository_for(SplitOrder).get(split_id).order_status == status


@then(parsers.cfparse('store "{store_id}" shows {quantity:d} units of "{sku}" to buyers'))
def store_shows_to_buyers(store_id, quantity, sku):
    record = current_domain.repository_for(HybridStockRecord).get(make_stock_key(sku, store_id))
    assert record.hybrid_stock == quantity


@then("the order has no unfulfilled items")
def no_unfulfilled_items(split_result):
    assert split_result["gaps"] == []
    assert current_domain.repository_for(OrderInfo).get(split_result["order_id"]).needs_review is False
