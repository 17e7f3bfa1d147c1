"""Shared fixtures for the allocation domain tests."""

import json
from datetime import UTC, datetime

import pytest
from allocation.channel import EMAIL, SMS, get_channel
from allocation.inventory_feed import set_inventory_feed
from allocation.inventory_feed.fake_adapter import FakeInventoryFeed
from allocation.logistics import set_logistics
from allocation.logistics.fake_adapter import FakeLogistics
from allocation.order_source import set_order_source
from allocation.order_source.fake_adapter import FakeOrderSource
from allocation.stock.stock import StockRecord, make_stock_key
from allocation.store.registration import RegisterStore
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _register_store(store_id, store_code=None, cluster=None, backup_store_id=None, pincodes=()):
    return current_domain.process(
        RegisterStore(
            store_id=store_id,
            store_code=store_code or store_id.upper(),
            store_name=f"Store {store_id}",
            cluster=cluster,
            backup_store_id=backup_store_id,
            address=f"{store_id} High Street",
            pincodes=json.dumps(list(pincodes)),
            latitude=12.97,
            longitude=77.59,
        ),
        asynchronous=False,
    )


def _put_stock(sku, store_id, raw_stock, buffer_stock=0):
    repo = current_domain.repository_for(StockRecord)
    try:
        record = repo.get(make_stock_key(sku, store_id))
    except ObjectNotFoundError:
        record = StockRecord.observe(sku=sku, store_id=store_id, raw_stock=raw_stock, buffer_stock=buffer_stock)
    else:
        record.overwrite(raw_stock, buffer_stock, datetime.now(UTC))
    repo.add(record)
    return record


@pytest.fixture()
def logistics():
    fake = FakeLogistics()
    set_logistics(fake)
    return fake


@pytest.fixture()
def order_source():
    fake = FakeOrderSource()
    set_order_source(fake)
    return fake


@pytest.fixture()
def inventory_feed():
    fake = FakeInventoryFeed()
    set_inventory_feed(fake)
    return fake


@pytest.fixture()
def sms():
    return get_channel(SMS)


@pytest.fixture()
def email():
    return get_channel(EMAIL)


@pytest.fixture()
def cluster_stores():
    """S1 and S2 in cluster C; S1 services pincode 560001."""
    _register_store("s1", "S1", cluster="C", pincodes=["560001"])
    _register_store("s2", "S2", cluster="C", pincodes=["560002"])


@pytest.fixture()
def primary_and_backup():
    """P services 560010 and is backed up by B."""
    _register_store("b", "B", pincodes=["560011"])
    _register_store("p", "P", backup_store_id="b", pincodes=["560010"])


@pytest.fixture()
def make_store():
    """Register a store through the RegisterStore command."""
    return _register_store


@pytest.fixture()
def put_stock():
    """Write a raw StockRecord for (sku, store)."""
    return _put_stock
