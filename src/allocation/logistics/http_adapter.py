"""Rider API adapter for the third-party delivery provider."""

import httpx
import structlog

from allocation.errors import TransientUpstreamError, UpstreamUnavailable
from allocation.logistics.port import (
    CancelResult,
    DeliveryRequest,
    Location,
    LogisticsPort,
    Payout,
    ServiceabilityResult,
    TaskResult,
)

logger = structlog.get_logger(__name__)


def _location(location: Location) -> dict:
    return {
        "name": location.name,
        "contact_number": location.contact_number,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "address": location.address,
        "city": location.city,
    }


class HttpLogistics(LogisticsPort):
    def __init__(
        self,
        base_url: str,
        access_token: str,
        store_ids: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        # Local store id -> provider store id; unmapped stores use their own id
        self.store_ids = store_ids or {}
        self.timeout = timeout
        self.transport = transport

    def _provider_store(self, store_id: str) -> str:
        return self.store_ids.get(store_id, store_id)

    def _post(self, endpoint: str, payload: dict) -> dict:
        headers = {"access-token": self.access_token, "Content-Type": "application/json"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(f"{self.base_url}/{endpoint}", json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransientUpstreamError("logistics", f"{endpoint} timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("logistics", str(exc)) from exc

        if response.status_code >= 500:
            raise TransientUpstreamError("logistics", f"{endpoint} returned HTTP {response.status_code}")
        if response.status_code >= 400:
            logger.error("Logistics request rejected", endpoint=endpoint, status=response.status_code)
            raise UpstreamUnavailable("logistics", f"{endpoint} returned HTTP {response.status_code}")
        return response.json()

    def _booking_payload(self, request: DeliveryRequest) -> dict:
        return {
            "storeId": self._provider_store(request.store_id),
            "order_details": {
                "order_total": request.order_total,
                "paid": str(request.paid).lower(),
                "vendor_order_id": request.split_id,
                "order_source": "storeflow",
            },
            "pickup_details": _location(request.pickup),
            "drop_details": _location(request.drop),
            "order_items": request.items,
        }

    def check_serviceability(self, request):
        data = self._post("getServiceability", self._booking_payload(request))
        serviceability = data.get("serviceability") or {}
        payouts = data.get("payouts") or {}
        location_ok = bool(serviceability.get("locationServiceAble"))
        rider_ok = bool(serviceability.get("riderServiceAble"))
        if not (location_ok and rider_ok):
            return ServiceabilityResult(
                location_serviceable=location_ok,
                rider_serviceable=rider_ok,
                error=payouts.get("message") or "Location not serviceable",
            )
        return ServiceabilityResult(
            location_serviceable=True,
            rider_serviceable=True,
            payout=Payout(
                price=float(payouts.get("price") or 0),
                tax=float(payouts.get("tax") or 0),
                total=float(payouts.get("total") or 0),
            ),
        )

    def create_task(self, request):
        data = self._post("createTask", self._booking_payload(request))
        return TaskResult(
            status=bool(data.get("status")),
            task_id=str(data["taskId"]) if data.get("taskId") is not None else None,
            status_code=data.get("Status_code") or data.get("status_code"),
            message=data.get("message"),
        )

    def cancel_task(self, task_id, store_id):
        data = self._post("cancelTask", {"storeId": self._provider_store(store_id), "taskId": task_id})
        return CancelResult(
            status=bool(data.get("status")),
            status_code=data.get("status_code"),
            message=data.get("message") or data.get("msg"),
        )
