from datetime import UTC, datetime, timedelta

import pytest
from allocation.stock.stock import HybridStockRecord, StockRecord, make_stock_key
from protean.exceptions import ValidationError


class TestStockRecord:
    def test_observe_builds_natural_key(self):
        record = StockRecord.observe("SKU-1", "s1", raw_stock=4, buffer_stock=1)
        assert record.stock_key == make_stock_key("SKU-1", "s1") == "SKU-1@s1"
        assert record.raw_stock == 4
        assert record.buffer_stock == 1

    def test_negative_feed_counts_are_clamped(self):
        record = StockRecord.observe("SKU-1", "s1", raw_stock=-3)
        assert record.raw_stock == 0

    def test_older_observation_is_ignored(self):
        now = datetime.now(UTC)
        record = StockRecord.observe("SKU-1", "s1", raw_stock=4, observed_at=now)

        assert record.overwrite(9, 0, now - timedelta(minutes=5)) is False
        assert record.raw_stock == 4

        assert record.overwrite(7, 2, now + timedelta(minutes=5), item_name="Tee") is True
        assert record.raw_stock == 7
        assert record.buffer_stock == 2
        assert record.item_name == "Tee"


class TestHybridStockRecord:
    def test_create_sums_components(self):
        record = HybridStockRecord.create("SKU-1", "s1", primary_stock=3, backup_stock=4, mode="primary_with_backup")
        assert record.hybrid_stock == 7
        event = record._events[-1]
        assert event.mode == "primary_with_backup"
        assert event.hybrid_stock == 7

    def test_product_metadata_is_copied(self):
        record = HybridStockRecord.create(
            "SKU-1",
            "s1",
            primary_stock=1,
            product_meta={"product_id": "p-1", "variant_id": "v-1", "title": "Tee", "image_url": "http://img"},
        )
        assert record.product_id == "p-1"
        assert record.variant_id == "v-1"
        assert record.product_title == "Tee"
        assert record.image_url == "http://img"

    def test_refresh_keeps_sum(self):
        record = HybridStockRecord.create("SKU-1", "s1", primary_stock=3)
        record.refresh(primary_stock=2, backup_stock=6, mode="primary_with_backup")
        assert (record.primary_stock, record.backup_stock, record.hybrid_stock) == (2, 6, 8)

    def test_inconsistent_hybrid_is_rejected(self):
        record = HybridStockRecord.create("SKU-1", "s1", primary_stock=3)
        with pytest.raises(ValidationError):
            record.hybrid_stock = 10

    def test_negative_components_are_rejected(self):
        with pytest.raises(ValidationError):
            HybridStockRecord.create("SKU-1", "s1", primary_stock=-1)


class TestRestore:
    def test_restore_adds_to_primary_and_hybrid(self):
        record = HybridStockRecord.create("SKU-1", "s1", primary_stock=1, backup_stock=2)
        record.restore(3, split_id="1001-S1")

        assert record.primary_stock == 4
        assert record.backup_stock == 2
        assert record.hybrid_stock == 6
        event = record._events[-1]
        assert event.quantity == 3
        assert event.split_id == "1001-S1"

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_is_rejected(self, quantity):
        record = HybridStockRecord.create("SKU-1", "s1", primary_stock=1)
        with pytest.raises(ValidationError):
            record.restore(quantity, split_id="1001-S1")
        assert record.hybrid_stock == 1
