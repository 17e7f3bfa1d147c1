"""Logistics port — third-party delivery serviceability and rider tasks.

Adapters return result objects for business outcomes (unserviceable,
rejected, not cancelled) and raise ``UpstreamUnavailable`` only when the
provider cannot be reached. ``TransientUpstreamError`` marks calls that are
safe to retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

TASK_ACCEPTED = "ACCEPTED"
TASK_CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Location:
    name: str
    address: str
    contact_number: str | None = None
    city: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class DeliveryRequest:
    """Everything the provider needs to price and book one split order."""

    split_id: str
    order_number: str
    store_id: str
    pickup: Location
    drop: Location
    order_total: float = 0.0
    paid: bool = True
    items: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class Payout:
    price: float
    tax: float
    total: float


@dataclass(frozen=True)
class ServiceabilityResult:
    location_serviceable: bool
    rider_serviceable: bool
    payout: Payout | None = None
    error: str | None = None

    @property
    def serviceable(self) -> bool:
        return self.error is None and self.location_serviceable and self.rider_serviceable


@dataclass(frozen=True)
class TaskResult:
    status: bool
    task_id: str | None = None
    status_code: str | None = None
    message: str | None = None

    @property
    def accepted(self) -> bool:
        return bool(self.status) and self.status_code == TASK_ACCEPTED


@dataclass(frozen=True)
class CancelResult:
    status: bool
    status_code: str | None = None
    message: str | None = None

    @property
    def cancelled(self) -> bool:
        return bool(self.status) and self.status_code == TASK_CANCELLED


class LogisticsPort(ABC):
    @abstractmethod
    def check_serviceability(self, request: DeliveryRequest) -> ServiceabilityResult: ...

    @abstractmethod
    def create_task(self, request: DeliveryRequest) -> TaskResult: ...

    @abstractmethod
    def cancel_task(self, task_id: str, store_id: str) -> CancelResult: ...
