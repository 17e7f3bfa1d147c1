"""Customer-facing notification events, one per split order milestone."""

from enum import Enum


class NotificationEvent(Enum):
    CONFIRMATION = "Confirmation"
    ON_HOLD = "OnHold"
    OUT_FOR_DELIVERY = "OutForDelivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
