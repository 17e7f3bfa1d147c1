"""Commerce platform adapter over its admin REST API."""

import httpx
import structlog

from allocation.errors import TransientUpstreamError, UpstreamUnavailable
from allocation.order_source.port import OrderLine, OrderSourcePort, ShippingAddress, SourceOrder

logger = structlog.get_logger(__name__)


class HttpOrderSource(OrderSourcePort):
    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    def _request(self, method: str, endpoint: str, payload: dict | None = None) -> httpx.Response:
        headers = {"X-Shopify-Access-Token": self.access_token, "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, f"{self.base_url}/{endpoint}", json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransientUpstreamError("order_source", f"{endpoint} timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("order_source", str(exc)) from exc
        if response.status_code >= 500:
            raise TransientUpstreamError("order_source", f"{endpoint} returned HTTP {response.status_code}")
        return response

    def find_order(self, order_id):
        response = self._request("GET", f"orders/{order_id}.json")
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise UpstreamUnavailable("order_source", f"HTTP {response.status_code}")

        order = response.json()["order"]
        shipping = order.get("shipping_address") or {}
        name = " ".join(p for p in (shipping.get("first_name"), shipping.get("last_name")) if p)
        return SourceOrder(
            order_id=str(order["id"]),
            order_number=str(order.get("order_number") or order["id"]),
            line_items=[
                OrderLine(line_item_id=str(li["id"]), sku=li.get("sku") or "", quantity=int(li["quantity"]))
                for li in order.get("line_items", [])
            ],
            shipping_address=ShippingAddress(
                pincode=str(shipping.get("zip") or ""),
                name=name,
                address=", ".join(p for p in (shipping.get("address1"), shipping.get("address2")) if p),
                city=shipping.get("city"),
                phone=shipping.get("phone"),
                latitude=shipping.get("latitude"),
                longitude=shipping.get("longitude"),
            ),
            financial_status=order.get("financial_status") or "pending",
            tags=[t.strip() for t in (order.get("tags") or "").split(",") if t.strip()],
            email=order.get("email"),
            total_price=float(order.get("current_total_price") or 0),
        )

    def cancel_order(self, order_id):
        response = self._request("POST", f"orders/{order_id}/cancel.json", {})
        if response.status_code >= 400:
            logger.error("Order cancellation rejected", order_id=order_id, status=response.status_code)
            return False
        return True

    def confirm_fulfillment(self, fulfillment_order_id):
        payload = {"fulfillment": {"line_items_by_fulfillment_order": [{"fulfillment_order_id": fulfillment_order_id}]}}
        response = self._request("POST", "fulfillments.json", payload)
        if response.status_code >= 400:
            logger.error(
                "Fulfillment confirmation rejected",
                fulfillment_order_id=fulfillment_order_id,
                status=response.status_code,
            )
            return False
        return True
