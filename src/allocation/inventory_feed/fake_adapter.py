"""Fake inventory feed — serves preloaded pages, optionally failing one."""

from datetime import UTC, datetime

from allocation.errors import UpstreamUnavailable
from allocation.inventory_feed.port import FeedPage, FeedRecord, InventoryFeedPort


class FakeInventoryFeed(InventoryFeedPort):
    def __init__(self):
        self.pages: list[list[dict]] = []
        self.failing_pages: set[int] = set()
        self.requests: list[dict] = []

    def load(self, pages: list[list[dict]]) -> None:
        """Load page contents; each row is a dict with FeedRecord field names."""
        self.pages = pages

    def fail_on(self, *pages: int) -> None:
        self.failing_pages = set(pages)

    def recover(self) -> None:
        self.failing_pages = set()

    def list_stock(self, since, page):
        self.requests.append({"since": since, "page": page})
        if page in self.failing_pages:
            raise UpstreamUnavailable("inventory_feed", f"page {page} unavailable")

        total_pages = len(self.pages)
        if page > total_pages:
            return FeedPage(page=page, total_pages=total_pages, records=[])

        records = []
        for row in self.pages[page - 1]:
            timestamp = row.get("timestamp") or datetime.now(UTC)
            if since and timestamp <= since:
                continue
            records.append(
                FeedRecord(
                    sku=row["sku"],
                    outlet_id=str(row["outlet_id"]),
                    stock=int(row.get("stock", 0)),
                    buffer_stock=int(row.get("buffer_stock", 0)),
                    timestamp=timestamp,
                    store_name=row.get("store_name"),
                    item_name=row.get("item_name"),
                )
            )
        return FeedPage(page=page, total_pages=total_pages, records=records)

    def reset(self) -> None:
        self.pages = []
        self.failing_pages = set()
        self.requests.clear()
