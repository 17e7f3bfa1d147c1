"""Inventory feed port — paginated raw stock counts from the ERP."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class FeedRecord:
    sku: str
    outlet_id: str
    stock: int
    buffer_stock: int
    timestamp: datetime
    store_name: str | None = None
    item_name: str | None = None


@dataclass(frozen=True)
class FeedPage:
    page: int
    total_pages: int
    records: list[FeedRecord] = field(default_factory=list)


class InventoryFeedPort(ABC):
    @abstractmethod
    def list_stock(self, since: datetime | None, page: int) -> FeedPage:
        """Fetch one page of stock rows observed after ``since``.

        Raises:
            UpstreamUnavailable: the feed could not be read.
        """
        ...
