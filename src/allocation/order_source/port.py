"""Order source port — the commerce platform holding authoritative orders."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class OrderLine:
    line_item_id: str
    sku: str
    quantity: int


@dataclass(frozen=True)
class ShippingAddress:
    pincode: str
    name: str = ""
    address: str = ""
    city: str | None = None
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True)
class SourceOrder:
    order_id: str
    order_number: str
    line_items: list[OrderLine]
    shipping_address: ShippingAddress
    financial_status: str = "pending"
    tags: list[str] = field(default_factory=list)
    email: str | None = None
    total_price: float = 0.0

    @property
    def customer_name(self) -> str:
        return self.shipping_address.name

    @property
    def phone_number(self) -> str | None:
        return self.shipping_address.phone


class OrderSourcePort(ABC):
    @abstractmethod
    def find_order(self, order_id: str) -> SourceOrder | None:
        """Return the order, or None when the source has no such order."""
        ...

    @abstractmethod
    def cancel_order(self, order_id: str) -> bool: ...

    @abstractmethod
    def confirm_fulfillment(self, fulfillment_order_id: str) -> bool: ...
