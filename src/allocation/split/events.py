"""Split order and order bookkeeping events.

Events are emitted after a transition has been applied to the aggregate and
are dispatched once the unit of work commits, so every side effect that
reacts to them (notifications, carrier calls, stock compensation) runs
against committed state.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from allocation.domain import allocation


@allocation.event(part_of="SplitOrder")
class SplitOrderCreated:
    """A per-store split order was created by the allocation planner."""

    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True)
    store_id = Identifier(required=True)
    store_code = String(required=True)
    line_items = Text(required=True)  # JSON list
    total_quantity = Integer(required=True)
    created_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderLineItemsRefreshed:
    """Re-planning replaced the line items of a split still in ``new``."""

    __version__ = 1

    split_id = String(required=True)
    line_items = Text(required=True)
    total_quantity = Integer(required=True)
    refreshed_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderPlacedOnHold:
    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    on_hold_status = String(required=True)
    on_hold_comment = Text()
    placed_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class HoldStatusUpdated:
    __version__ = 1

    split_id = String(required=True)
    on_hold_status = String(required=True)
    updated_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderConfirmed:
    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderReadyForPickup:
    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    ready_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class LogisticsErrorRecorded:
    """The carrier could not service or book the split; it awaits manual action."""

    __version__ = 1

    split_id = String(required=True)
    error = Text(required=True)
    recorded_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class DeliveryTaskCreated:
    __version__ = 1

    split_id = String(required=True)
    task_id = String(required=True)
    status_code = String(required=True)
    created_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderOutForDelivery:
    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    dispatched_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderDelivered:
    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitOrderCancelled:
    """A split order was cancelled; stock and carrier task must be released."""

    __version__ = 1

    split_id = String(required=True)
    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    previous_status = String(required=True)
    tpl_task_id = String()
    line_items = Text(required=True)  # JSON list
    reason = String()
    replanned = Boolean(default=False)  # withdrawn by re-planning, the order itself stands
    cancelled_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class DeliveryTaskCancelled:
    __version__ = 1

    split_id = String(required=True)
    task_id = String(required=True)
    status_code = String(required=True)
    cancelled_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class TrackingStatusRecorded:
    __version__ = 1

    split_id = String(required=True)
    status_code = String(required=True)
    order_status = String(required=True)
    recorded_at = DateTime(required=True)


@allocation.event(part_of="SplitOrder")
class SplitStockCompensated:
    __version__ = 1

    split_id = String(required=True)
    total_quantity = Integer(required=True)
    compensated_at = DateTime(required=True)


@allocation.event(part_of="OrderInfo")
class OrderSplitRecorded:
    """An order was split for the first time."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference_id = String(required=True)
    split_mode = String(required=True)
    split_ids = Text(required=True)  # JSON list
    needs_review = Boolean(default=False)
    recorded_at = DateTime(required=True)


@allocation.event(part_of="OrderInfo")
class AllocationGapRecorded:
    """Stock could not cover the full order; the remainder needs manual review."""

    __version__ = 1

    order_id = Identifier(required=True)
    gaps = Text(required=True)  # JSON list of {line_item_id, sku, requested, allocated}
    recorded_at = DateTime(required=True)


@allocation.event(part_of="OrderInfo")
class DraftOrderLinked:
    __version__ = 1

    order_id = Identifier(required=True)
    draft_order_id = String(required=True)
    linked_at = DateTime(required=True)


@allocation.event(part_of="OrderInfo")
class OrderReplanned:
    __version__ = 1

    order_id = Identifier(required=True)
    split_ids = Text(required=True)
    replanned_at = DateTime(required=True)
