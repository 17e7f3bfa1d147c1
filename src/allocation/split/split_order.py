"""SplitOrder aggregate — one store's share of a customer order.

State Machine:
    NEW → {ON_HOLD, CONFIRMED, READY_FOR_PICKUP}
    ON_HOLD → {CONFIRMED, READY_FOR_PICKUP}
    CONFIRMED → READY_FOR_PICKUP
    READY_FOR_PICKUP → OUT_FOR_DELIVERY → DELIVERED
    every non-terminal status → CANCELLED
    DELIVERED and CANCELLED are terminal

While ON_HOLD the split carries an open/closed hold sub-status. Every later
transition closes it. ``time_stamps`` records when each status was entered;
entries are only ever added.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from allocation.domain import allocation
from allocation.split.events import (
    DeliveryTaskCancelled,
    DeliveryTaskCreated,
    HoldStatusUpdated,
    LogisticsErrorRecorded,
    SplitOrderCancelled,
    SplitOrderConfirmed,
    SplitOrderCreated,
    SplitOrderDelivered,
    SplitOrderLineItemsRefreshed,
    SplitOrderOutForDelivery,
    SplitOrderPlacedOnHold,
    SplitOrderReadyForPickup,
    SplitStockCompensated,
    TrackingStatusRecorded,
)


class SplitOrderStatus(Enum):
    NEW = "new"
    ON_HOLD = "on_hold"
    CONFIRMED = "confirmed"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancel"


class HoldStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


_VALID_TRANSITIONS = {
    SplitOrderStatus.NEW: {
        SplitOrderStatus.ON_HOLD,
        SplitOrderStatus.CONFIRMED,
        SplitOrderStatus.READY_FOR_PICKUP,
        SplitOrderStatus.CANCELLED,
    },
    SplitOrderStatus.ON_HOLD: {
        SplitOrderStatus.CONFIRMED,
        SplitOrderStatus.READY_FOR_PICKUP,
        SplitOrderStatus.CANCELLED,
    },
    SplitOrderStatus.CONFIRMED: {SplitOrderStatus.READY_FOR_PICKUP, SplitOrderStatus.CANCELLED},
    SplitOrderStatus.READY_FOR_PICKUP: {SplitOrderStatus.OUT_FOR_DELIVERY, SplitOrderStatus.CANCELLED},
    SplitOrderStatus.OUT_FOR_DELIVERY: {SplitOrderStatus.DELIVERED, SplitOrderStatus.CANCELLED},
    SplitOrderStatus.DELIVERED: set(),  # terminal
    SplitOrderStatus.CANCELLED: set(),  # terminal
}

TERMINAL_STATUSES = {SplitOrderStatus.DELIVERED, SplitOrderStatus.CANCELLED}

# Position along the delivery path; transitions never decrease it
STATUS_RANK = {
    SplitOrderStatus.NEW: 0,
    SplitOrderStatus.ON_HOLD: 1,
    SplitOrderStatus.CONFIRMED: 2,
    SplitOrderStatus.READY_FOR_PICKUP: 3,
    SplitOrderStatus.OUT_FOR_DELIVERY: 4,
    SplitOrderStatus.DELIVERED: 5,
    SplitOrderStatus.CANCELLED: 5,
}


def split_id_for(order_number: str, store_code: str) -> str:
    """Deterministic split identifier: one split per (order, store)."""
    return f"{order_number}-{store_code}"


def _epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


@allocation.entity(part_of="SplitOrder")
class SplitLineItem:
    line_item_id = String(required=True, max_length=100)
    sku = String(required=True, max_length=100)
    quantity = Integer(required=True, min_value=1)
    store_id = Identifier(required=True)


@allocation.aggregate
class SplitOrder:
    split_id = String(identifier=True, required=True, max_length=150)
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    store_id = Identifier(required=True)
    store_code = String(required=True, max_length=50)
    line_items = HasMany(SplitLineItem)
    order_status = String(choices=SplitOrderStatus, default=SplitOrderStatus.NEW.value)
    on_hold_status = String(choices=HoldStatus)
    on_hold_comment = Text()
    time_stamps = Text()  # JSON {status: epoch millis}
    tpl_task_id = String(max_length=100)
    tpl_status = String(max_length=50)
    tpl_status_code = String(max_length=50)
    tpl_message = Text()
    tpl_message_level = String(max_length=10)  # info | error
    tpl_payout_price = Float()
    tpl_payout_tax = Float()
    tpl_payout_total = Float()
    rider_name = String(max_length=100)
    rider_contact = String(max_length=30)
    tracking_url = String(max_length=500)
    stock_compensated = Boolean(default=False)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_id: str,
        order_number: str,
        store_id: str,
        store_code: str,
        line_items: list[dict],
    ):
        if not line_items:
            raise ValidationError({"line_items": ["A split order needs at least one line item"]})

        now = datetime.now(UTC)
        split = cls(
            split_id=split_id_for(order_number, store_code),
            order_id=order_id,
            order_number=str(order_number),
            store_id=store_id,
            store_code=store_code,
            order_status=SplitOrderStatus.NEW.value,
            time_stamps=json.dumps({SplitOrderStatus.NEW.value: _epoch_millis(now)}),
            created_at=now,
            updated_at=now,
        )
        for item in line_items:
            split.add_line_items(SplitLineItem(store_id=store_id, **item))

        split.raise_(
            SplitOrderCreated(
                split_id=split.split_id,
                order_id=order_id,
                order_number=str(order_number),
                store_id=store_id,
                store_code=store_code,
                line_items=json.dumps(split.line_items_data()),
                total_quantity=split.total_quantity,
                created_at=now,
            )
        )
        return split

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    @property
    def status(self) -> SplitOrderStatus:
        return SplitOrderStatus(self.order_status)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in (self.line_items or []))

    @property
    def timestamps(self) -> dict[str, int]:
        return json.loads(self.time_stamps) if self.time_stamps else {}

    @property
    def has_active_task(self) -> bool:
        return bool(self.tpl_task_id) and self.tpl_status_code != "CANCELLED"

    def line_items_data(self) -> list[dict]:
        return [
            {
                "line_item_id": item.line_item_id,
                "sku": item.sku,
                "quantity": item.quantity,
                "store_id": str(item.store_id),
            }
            for item in (self.line_items or [])
        ]

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: SplitOrderStatus) -> None:
        current = self.status
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"order_status": [f"Cannot transition from {current.value} to {target_status.value}"]}
            )

    def _stamp(self, key: str, moment: datetime) -> None:
        stamps = self.timestamps
        if key in stamps:
            raise ValidationError({"time_stamps": [f"Status {key} was already entered"]})
        stamps[key] = _epoch_millis(moment)
        self.time_stamps = json.dumps(stamps)

    def _enter(self, target_status: SplitOrderStatus, close_hold: bool = True) -> datetime:
        self._assert_can_transition(target_status)
        now = datetime.now(UTC)
        self.order_status = target_status.value
        if close_hold:
            self.on_hold_status = HoldStatus.CLOSED.value
        self._stamp(target_status.value, now)
        self.updated_at = now
        return now

    # -------------------------------------------------------------------
    # Re-planning
    # -------------------------------------------------------------------
    def refresh_line_items(self, line_items: list[dict]) -> None:
        """Replace line items with a fresh allocation; only while still ``new``."""
        if self.status != SplitOrderStatus.NEW:
            raise ValidationError({"order_status": [f"Cannot refresh a split in {self.order_status}"]})
        if not line_items:
            raise ValidationError({"line_items": ["A split order needs at least one line item"]})

        for item in list(self.line_items or []):
            self.remove_line_items(item)
        for item in line_items:
            self.add_line_items(SplitLineItem(store_id=self.store_id, **item))

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            SplitOrderLineItemsRefreshed(
                split_id=self.split_id,
                line_items=json.dumps(self.line_items_data()),
                total_quantity=self.total_quantity,
                refreshed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Hold
    # -------------------------------------------------------------------
    def place_on_hold(self, on_hold_status: str = HoldStatus.OPEN.value, comment: str | None = None) -> None:
        hold_status = HoldStatus(on_hold_status)
        now = self._enter(SplitOrderStatus.ON_HOLD, close_hold=False)
        self.on_hold_status = hold_status.value
        self.on_hold_comment = comment
        self.raise_(
            SplitOrderPlacedOnHold(
                split_id=self.split_id,
                order_id=str(self.order_id),
                on_hold_status=hold_status.value,
                on_hold_comment=comment,
                placed_at=now,
            )
        )

    def update_hold_status(self, on_hold_status: str) -> None:
        if self.status != SplitOrderStatus.ON_HOLD:
            raise ValidationError({"on_hold_status": ["Hold status can only change while the split is on hold"]})
        hold_status = HoldStatus(on_hold_status)
        now = datetime.now(UTC)
        self.on_hold_status = hold_status.value
        self.updated_at = now
        self.raise_(HoldStatusUpdated(split_id=self.split_id, on_hold_status=hold_status.value, updated_at=now))

    # -------------------------------------------------------------------
    # Confirmation and pickup
    # -------------------------------------------------------------------
    def confirm(self) -> None:
        now = self._enter(SplitOrderStatus.CONFIRMED)
        self.raise_(SplitOrderConfirmed(split_id=self.split_id, order_id=str(self.order_id), confirmed_at=now))

    def mark_ready_for_pickup(self) -> None:
        now = self._enter(SplitOrderStatus.READY_FOR_PICKUP)
        self.raise_(SplitOrderReadyForPickup(split_id=self.split_id, order_id=str(self.order_id), ready_at=now))

    def record_logistics_error(self, error: str) -> None:
        """Annotate a carrier failure; status is left for manual intervention."""
        now = datetime.now(UTC)
        self.tpl_message = error
        self.tpl_message_level = "error"
        self.updated_at = now
        self.raise_(LogisticsErrorRecorded(split_id=self.split_id, error=error, recorded_at=now))

    def record_payout(self, price: float, tax: float, total: float) -> None:
        self.tpl_payout_price = round(price, 2)
        self.tpl_payout_tax = round(tax, 2)
        self.tpl_payout_total = round(total, 2)
        self.tpl_message = "Order is available"
        self.tpl_message_level = "info"
        self.updated_at = datetime.now(UTC)

    def record_delivery_task(self, task_id: str, status: str, status_code: str, message: str | None) -> None:
        if self.status != SplitOrderStatus.READY_FOR_PICKUP:
            raise ValidationError({"order_status": ["A delivery task can only be booked once ready for pickup"]})
        now = datetime.now(UTC)
        self.tpl_task_id = task_id
        self.tpl_status = status
        self.tpl_status_code = status_code
        self.tpl_message = message
        self.tpl_message_level = "info"
        self.updated_at = now
        self.raise_(DeliveryTaskCreated(split_id=self.split_id, task_id=task_id, status_code=status_code, created_at=now))

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def dispatch(self) -> None:
        now = self._enter(SplitOrderStatus.OUT_FOR_DELIVERY)
        self.raise_(
            SplitOrderOutForDelivery(split_id=self.split_id, order_id=str(self.order_id), dispatched_at=now)
        )

    def deliver(self) -> None:
        now = self._enter(SplitOrderStatus.DELIVERED)
        self.raise_(SplitOrderDelivered(split_id=self.split_id, order_id=str(self.order_id), delivered_at=now))

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, reason: str | None = None, replanned: bool = False) -> None:
        previous = self.status
        now = self._enter(SplitOrderStatus.CANCELLED)
        self.cancellation_reason = reason
        self.raise_(
            SplitOrderCancelled(
                split_id=self.split_id,
                order_id=str(self.order_id),
                store_id=str(self.store_id),
                previous_status=previous.value,
                tpl_task_id=self.tpl_task_id if self.has_active_task else None,
                line_items=json.dumps(self.line_items_data()),
                reason=reason,
                replanned=replanned,
                cancelled_at=now,
            )
        )

    def withdraw(self) -> None:
        """Cancel a ``new`` split that a re-planning run no longer ships from."""
        if self.status != SplitOrderStatus.NEW:
            raise ValidationError({"order_status": [f"Cannot withdraw a split in {self.order_status}"]})
        self.cancel(reason="Dropped by re-planning", replanned=True)

    def record_task_cancellation(self, task_id: str, status_code: str, message: str | None) -> None:
        now = datetime.now(UTC)
        self.tpl_status_code = status_code
        self.tpl_message = message
        self.tpl_message_level = "info"
        self.updated_at = now
        self.raise_(
            DeliveryTaskCancelled(split_id=self.split_id, task_id=task_id, status_code=status_code, cancelled_at=now)
        )

    def mark_stock_compensated(self) -> None:
        if self.status != SplitOrderStatus.CANCELLED:
            raise ValidationError({"stock_compensated": ["Only cancelled splits release stock"]})
        if self.stock_compensated:
            raise ValidationError({"stock_compensated": ["Stock was already restored for this split"]})
        now = datetime.now(UTC)
        self.stock_compensated = True
        self.updated_at = now
        self.raise_(
            SplitStockCompensated(split_id=self.split_id, total_quantity=self.total_quantity, compensated_at=now)
        )

    # -------------------------------------------------------------------
    # Carrier tracking
    # -------------------------------------------------------------------
    def record_tracking(
        self,
        status: str | None,
        status_code: str,
        message: str | None = None,
        rider_name: str | None = None,
        rider_contact: str | None = None,
        tracking_url: str | None = None,
    ) -> None:
        now = datetime.now(UTC)
        self.tpl_status = status
        self.tpl_status_code = status_code
        self.tpl_message = message
        self.tpl_message_level = "info"
        if rider_name:
            self.rider_name = rider_name
        if rider_contact:
            self.rider_contact = rider_contact
        if tracking_url:
            self.tracking_url = tracking_url
        self.updated_at = now
        self.raise_(
            TrackingStatusRecorded(
                split_id=self.split_id,
                status_code=status_code,
                order_status=self.order_status,
                recorded_at=now,
            )
        )
