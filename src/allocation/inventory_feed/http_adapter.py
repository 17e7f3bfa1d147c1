"""HTTP inventory feed adapter for the ERP stock endpoint."""

from datetime import UTC, datetime

import httpx
import structlog

from allocation.errors import TransientUpstreamError, UpstreamUnavailable
from allocation.inventory_feed.port import FeedPage, FeedRecord, InventoryFeedPort

logger = structlog.get_logger(__name__)

_FIELDS = "itemReferenceCode,itemName,bufferStock,outletId,stock,timestamp,outletName"


def _parse_timestamp(value) -> datetime:
    if value is None or value == "":
        return datetime.now(UTC)
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class HttpInventoryFeed(InventoryFeedPort):
    def __init__(
        self,
        base_url: str,
        auth_token: str,
        page_size: int = 1000,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.page_size = page_size
        self.timeout = timeout
        self.transport = transport

    def list_stock(self, since, page):
        params = {"limit": self.page_size, "selectAll": "true", "page": page}
        if since is not None:
            params["q"] = f"timeStamp>>{since.isoformat()}"
            params["fields"] = _FIELDS
        headers = {"Content-Type": "application/json", "X-Auth-Token": self.auth_token}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(f"{self.base_url}/stock", params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransientUpstreamError("inventory_feed", f"timeout on page {page}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("inventory_feed", str(exc)) from exc

        if response.status_code >= 500:
            raise TransientUpstreamError("inventory_feed", f"HTTP {response.status_code} on page {page}")
        if response.status_code >= 400:
            raise UpstreamUnavailable("inventory_feed", f"HTTP {response.status_code} on page {page}")

        data = response.json()
        records = [
            FeedRecord(
                sku=str(item["itemReferenceCode"]),
                outlet_id=str(item["outletId"]),
                stock=int(item.get("stock") or 0),
                buffer_stock=int(item.get("bufferStock") or 0),
                timestamp=_parse_timestamp(item.get("timestamp")),
                store_name=item.get("outletName"),
                item_name=item.get("itemName"),
            )
            for item in data.get("stock", [])
        ]
        logger.debug("Inventory feed page fetched", page=page, records=len(records))
        return FeedPage(page=page, total_pages=int(data.get("total_pages") or 1), records=records)
