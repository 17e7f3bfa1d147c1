"""Inventory feed adapter registry.

FakeInventoryFeed by default; INVENTORY_FEED_ADAPTER=http selects the ERP
adapter configured by INVENTORY_FEED_BASE_URL and INVENTORY_FEED_API_KEY.
"""

import os

from allocation.inventory_feed.port import InventoryFeedPort

_feed_instance: InventoryFeedPort | None = None


def get_inventory_feed() -> InventoryFeedPort:
    global _feed_instance
    if _feed_instance is None:
        adapter = os.environ.get("INVENTORY_FEED_ADAPTER", "fake")
        if adapter == "fake":
            from allocation.inventory_feed.fake_adapter import FakeInventoryFeed

            _feed_instance = FakeInventoryFeed()
        elif adapter == "http":
            from allocation.inventory_feed.http_adapter import HttpInventoryFeed

            _feed_instance = HttpInventoryFeed(
                base_url=os.environ["INVENTORY_FEED_BASE_URL"],
                auth_token=os.environ.get("INVENTORY_FEED_API_KEY", ""),
            )
        else:
            raise ValueError(f"Unknown inventory feed adapter: {adapter}")
    return _feed_instance


def set_inventory_feed(feed: InventoryFeedPort) -> None:
    global _feed_instance
    _feed_instance = feed


def reset_inventory_feed() -> None:
    global _feed_instance
    _feed_instance = None
