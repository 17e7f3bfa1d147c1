"""Split order board — one row per split for the operator console."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

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
    TrackingStatusRecorded,
)
from allocation.split.split_order import SplitOrder


@allocation.projection
class SplitOrderBoard:
    split_id = String(identifier=True, required=True, max_length=150)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    store_id = Identifier(required=True)
    store_code = String()
    order_status = String(required=True)
    on_hold_status = String()
    total_quantity = Integer(default=0)
    tpl_task_id = String()
    tpl_status_code = String()
    last_error = Text()
    created_at = DateTime()
    updated_at = DateTime()


@allocation.projector(projector_for=SplitOrderBoard, aggregates=[SplitOrder])
class SplitOrderBoardProjector:
    def _update(self, split_id, updated_at, **changes):
        repo = current_domain.repository_for(SplitOrderBoard)
        row = repo.get(split_id)
        for name, value in changes.items():
            setattr(row, name, value)
        row.updated_at = updated_at
        repo.add(row)

    @on(SplitOrderCreated)
    def on_split_order_created(self, event):
        current_domain.repository_for(SplitOrderBoard).add(
            SplitOrderBoard(
                split_id=event.split_id,
                order_id=event.order_id,
                order_number=event.order_number,
                store_id=event.store_id,
                store_code=event.store_code,
                order_status="new",
                total_quantity=event.total_quantity,
                created_at=event.created_at,
                updated_at=event.created_at,
            )
        )

    @on(SplitOrderLineItemsRefreshed)
    def on_line_items_refreshed(self, event):
        self._update(event.split_id, event.refreshed_at, total_quantity=event.total_quantity)

    @on(SplitOrderPlacedOnHold)
    def on_placed_on_hold(self, event):
        self._update(event.split_id, event.placed_at, order_status="on_hold", on_hold_status=event.on_hold_status)

    @on(HoldStatusUpdated)
    def on_hold_status_updated(self, event):
        self._update(event.split_id, event.updated_at, on_hold_status=event.on_hold_status)

    @on(SplitOrderConfirmed)
    def on_confirmed(self, event):
        self._update(event.split_id, event.confirmed_at, order_status="confirmed", on_hold_status="closed")

    @on(SplitOrderReadyForPickup)
    def on_ready_for_pickup(self, event):
        self._update(event.split_id, event.ready_at, order_status="ready_for_pickup", on_hold_status="closed")

    @on(LogisticsErrorRecorded)
    def on_logistics_error(self, event):
        self._update(event.split_id, event.recorded_at, last_error=event.error)

    @on(DeliveryTaskCreated)
    def on_delivery_task_created(self, event):
        self._update(
            event.split_id,
            event.created_at,
            tpl_task_id=event.task_id,
            tpl_status_code=event.status_code,
            last_error=None,
        )

    @on(SplitOrderOutForDelivery)
    def on_out_for_delivery(self, event):
        self._update(event.split_id, event.dispatched_at, order_status="out_for_delivery", on_hold_status="closed")

    @on(SplitOrderDelivered)
    def on_delivered(self, event):
        self._update(event.split_id, event.delivered_at, order_status="delivered", on_hold_status="closed")

    @on(SplitOrderCancelled)
    def on_cancelled(self, event):
        self._update(event.split_id, event.cancelled_at, order_status="cancel", on_hold_status="closed")

    @on(DeliveryTaskCancelled)
    def on_task_cancelled(self, event):
        self._update(event.split_id, event.cancelled_at, tpl_status_code=event.status_code)

    @on(TrackingStatusRecorded)
    def on_tracking_recorded(self, event):
        self._update(event.split_id, event.recorded_at, tpl_status_code=event.status_code)
