"""FastAPI routes for the allocation service."""

import json

from fastapi import APIRouter, HTTPException
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from allocation.api.schemas import (
    AggregateStockRequest,
    AggregationResponse,
    AssignBackupStoreRequest,
    CancelSplitRequest,
    ClusterGroupResponse,
    FeedRunResponse,
    HybridStockResponse,
    LinkDraftOrderRequest,
    NotificationLogResponse,
    PickupResponse,
    PlaceOnHoldRequest,
    RegisterStoreRequest,
    SplitOrderRequest,
    SplitOrderResponse,
    SplitPlanResponse,
    StatusResponse,
    StoreIdResponse,
    TrackingResponse,
    TrackingWebhookRequest,
    UpdateHoldStatusRequest,
    UpdateStoreStatusRequest,
)
from allocation.notification_log.notification_log import MarkNotificationLogViewed, NotificationLog
from allocation.split import actions
from allocation.split.split_order import SplitOrder
from allocation.stock.aggregator import StockAggregator, VariantRef
from allocation.stock.feed import InventoryFeedSync
from allocation.stock.stock import HybridStockRecord, make_stock_key
from allocation.store.directory import StoreDirectory
from allocation.store.registration import AssignBackupStore, RegisterStore, UpdateStoreStatus

# ---------------------------------------------------------------------------
# Store Router
# ---------------------------------------------------------------------------
store_router = APIRouter(prefix="/stores", tags=["stores"])


@store_router.post("", status_code=201, response_model=StoreIdResponse)
async def register_store(body: RegisterStoreRequest) -> StoreIdResponse:
    command = RegisterStore(
        store_id=body.store_id,
        store_code=body.store_code,
        store_name=body.store_name,
        cluster=body.cluster,
        backup_store_id=body.backup_store_id,
        address=body.address,
        pincodes=json.dumps(body.pincodes),
        latitude=body.latitude,
        longitude=body.longitude,
    )
    result = current_domain.process(command, asynchronous=False)
    return StoreIdResponse(store_id=result)


@store_router.put("/{store_id}/status", response_model=StatusResponse)
async def update_store_status(store_id: str, body: UpdateStoreStatusRequest) -> StatusResponse:
    current_domain.process(UpdateStoreStatus(store_id=store_id, status=body.status), asynchronous=False)
    return StatusResponse(status=body.status)


@store_router.put("/{store_id}/backup", response_model=StatusResponse)
async def assign_backup_store(store_id: str, body: AssignBackupStoreRequest) -> StatusResponse:
    current_domain.process(
        AssignBackupStore(store_id=store_id, backup_store_id=body.backup_store_id),
        asynchronous=False,
    )
    return StatusResponse(status="backup_assigned")


@store_router.get("/clusters", response_model=list[ClusterGroupResponse])
async def list_clusters() -> list[ClusterGroupResponse]:
    groups = StoreDirectory().cluster_groups()
    return [ClusterGroupResponse(cluster=g.cluster, store_ids=g.store_ids) for g in groups.values()]


# ---------------------------------------------------------------------------
# Stock Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/stock", tags=["stock"])


@stock_router.post("/sync", response_model=FeedRunResponse)
async def sync_inventory() -> FeedRunResponse:
    """Run the inventory feed from the last checkpoint."""
    result = InventoryFeedSync().run()
    return FeedRunResponse(
        completed=result.completed,
        pages_processed=result.pages_processed,
        records_upserted=result.records_upserted,
        next_page=result.cursor.page,
        error=result.error,
    )


@stock_router.post("/aggregate", response_model=AggregationResponse)
async def aggregate_stock(body: AggregateStockRequest) -> AggregationResponse:
    aggregator = StockAggregator(body.mode)
    report = aggregator.aggregate(VariantRef(**variant.model_dump()) for variant in body.variants)
    return AggregationResponse(
        mode=aggregator.mode.value,
        created=report.created,
        updated=report.updated,
        processed_skus=report.processed_skus,
        failed_skus=report.failed_skus,
    )


@stock_router.get("/hybrid/{sku}/{store_id}", response_model=HybridStockResponse)
async def get_hybrid_stock(sku: str, store_id: str) -> HybridStockResponse:
    try:
        record = current_domain.repository_for(HybridStockRecord).get(make_stock_key(sku, store_id))
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"No hybrid stock for {sku} at {store_id}")
    return HybridStockResponse(
        sku=record.sku,
        store_id=str(record.store_id),
        primary_stock=record.primary_stock,
        backup_stock=record.backup_stock,
        hybrid_stock=record.hybrid_stock,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/{order_id}/split", response_model=SplitPlanResponse)
async def split_order(order_id: str, body: SplitOrderRequest) -> SplitPlanResponse:
    try:
        result = actions.split_order(order_id, split_mode=body.split_mode, store_id=body.store_id)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return SplitPlanResponse(**result)


@order_router.put("/{order_id}/draft-order", response_model=StatusResponse)
async def link_draft_order(order_id: str, body: LinkDraftOrderRequest) -> StatusResponse:
    actions.link_draft_order(order_id, body.draft_order_id)
    return StatusResponse(status="draft_order_linked")


# ---------------------------------------------------------------------------
# Split Router
# ---------------------------------------------------------------------------
split_router = APIRouter(prefix="/splits", tags=["splits"])


@split_router.get("/{split_id}", response_model=SplitOrderResponse)
async def get_split(split_id: str) -> SplitOrderResponse:
    try:
        split = current_domain.repository_for(SplitOrder).get(split_id)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"Split order {split_id} not found")
    return SplitOrderResponse(
        split_id=split.split_id,
        order_id=str(split.order_id),
        store_id=str(split.store_id),
        order_status=split.order_status,
        on_hold_status=split.on_hold_status,
        line_items=split.line_items_data(),
        time_stamps=split.timestamps,
        tpl_task_id=split.tpl_task_id,
        tpl_status_code=split.tpl_status_code,
        tpl_message=split.tpl_message,
        stock_compensated=bool(split.stock_compensated),
    )


@split_router.put("/{split_id}/hold", response_model=StatusResponse)
async def place_on_hold(split_id: str, body: PlaceOnHoldRequest) -> StatusResponse:
    actions.place_on_hold(split_id, body.on_hold_status, body.comment)
    return StatusResponse(status="on_hold")


@split_router.put("/{split_id}/hold-status", response_model=StatusResponse)
async def update_hold_status(split_id: str, body: UpdateHoldStatusRequest) -> StatusResponse:
    actions.update_hold_status(split_id, body.on_hold_status)
    return StatusResponse(status=body.on_hold_status)


@split_router.put("/{split_id}/confirm", response_model=StatusResponse)
async def confirm_split(split_id: str) -> StatusResponse:
    actions.confirm(split_id)
    return StatusResponse(status="confirmed")


@split_router.put("/{split_id}/ready-for-pickup", response_model=PickupResponse)
async def ready_for_pickup(split_id: str) -> PickupResponse:
    outcome = actions.mark_ready_for_pickup(split_id)
    return PickupResponse(success=outcome.success, error=outcome.error, task_id=outcome.task_id)


@split_router.put("/{split_id}/delivery-task", response_model=PickupResponse)
async def book_delivery_task(split_id: str) -> PickupResponse:
    outcome = actions.book_delivery_task(split_id)
    return PickupResponse(success=outcome.success, error=outcome.error, task_id=outcome.task_id)


@split_router.put("/{split_id}/out-for-delivery", response_model=StatusResponse)
async def out_for_delivery(split_id: str) -> StatusResponse:
    actions.dispatch(split_id)
    return StatusResponse(status="out_for_delivery")


@split_router.put("/{split_id}/delivered", response_model=StatusResponse)
async def delivered(split_id: str) -> StatusResponse:
    actions.deliver(split_id)
    return StatusResponse(status="delivered")


@split_router.put("/{split_id}/cancel", response_model=StatusResponse)
async def cancel_split(split_id: str, body: CancelSplitRequest) -> StatusResponse:
    actions.cancel(split_id, body.reason)
    return StatusResponse(status="cancel")


@split_router.put("/{split_id}/compensate-stock", response_model=StatusResponse)
async def compensate_stock(split_id: str) -> StatusResponse:
    actions.compensate_stock(split_id)
    return StatusResponse(status="stock_compensated")


@split_router.post("/tracking", response_model=TrackingResponse)
async def tracking_webhook(body: TrackingWebhookRequest) -> TrackingResponse:
    """Carrier rider-status webhook."""
    result = actions.sync_tracking(**body.model_dump())
    return TrackingResponse(**result)


# ---------------------------------------------------------------------------
# Notification Log Router
# ---------------------------------------------------------------------------
notification_log_router = APIRouter(prefix="/notification-logs", tags=["notification-logs"])


@notification_log_router.get("", response_model=list[NotificationLogResponse])
async def list_notification_logs(unviewed_only: bool = False) -> list[NotificationLogResponse]:
    query = current_domain.repository_for(NotificationLog)._dao.query
    if unviewed_only:
        query = query.filter(viewed=False)
    entries = query.order_by("-created_at").all().items
    return [
        NotificationLogResponse(
            id=str(entry.id),
            title=entry.title,
            markdown=entry.markdown,
            log_type=entry.log_type,
            viewed=bool(entry.viewed),
        )
        for entry in entries
    ]


@notification_log_router.put("/{log_id}/viewed", response_model=StatusResponse)
async def mark_notification_log_viewed(log_id: str) -> StatusResponse:
    current_domain.process(MarkNotificationLogViewed(log_id=log_id), asynchronous=False)
    return StatusResponse(status="viewed")
