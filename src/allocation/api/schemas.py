"""Pydantic API schemas for the allocation service.

These are the external API contracts, separate from domain commands. The
routes translate between the two.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class RegisterStoreRequest(BaseModel):
    store_id: str
    store_code: str
    store_name: str
    cluster: str | None = None
    backup_store_id: str | None = None
    address: str | None = None
    pincodes: list[str] = Field(default_factory=list)
    latitude: float | None = None
    longitude: float | None = None


class UpdateStoreStatusRequest(BaseModel):
    status: str


class AssignBackupStoreRequest(BaseModel):
    backup_store_id: str | None = None


class VariantRequest(BaseModel):
    sku: str
    product_id: str | None = None
    variant_id: str | None = None
    title: str | None = None
    image_url: str | None = None


class AggregateStockRequest(BaseModel):
    mode: str | None = None
    variants: list[VariantRequest]


class SplitOrderRequest(BaseModel):
    split_mode: str | None = None
    store_id: str | None = None


class LinkDraftOrderRequest(BaseModel):
    draft_order_id: str


class PlaceOnHoldRequest(BaseModel):
    on_hold_status: str = "open"
    comment: str | None = None


class UpdateHoldStatusRequest(BaseModel):
    on_hold_status: str


class CancelSplitRequest(BaseModel):
    reason: str | None = None


class TrackingWebhookRequest(BaseModel):
    split_id: str | None = None
    task_id: str | None = None
    status: str | None = None
    status_code: str
    message: str | None = None
    rider_name: str | None = None
    rider_contact: str | None = None
    tracking_url: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str


class StoreIdResponse(BaseModel):
    store_id: str


class ClusterGroupResponse(BaseModel):
    cluster: str
    store_ids: list[str]


class FeedRunResponse(BaseModel):
    completed: bool
    pages_processed: list[int]
    records_upserted: int
    next_page: int
    error: str | None = None


class AggregationResponse(BaseModel):
    mode: str
    created: int
    updated: int
    processed_skus: list[str]
    failed_skus: dict[str, str]


class HybridStockResponse(BaseModel):
    sku: str
    store_id: str
    primary_stock: int
    backup_stock: int
    hybrid_stock: int


class SplitPlanResponse(BaseModel):
    order_id: str
    split_ids: list[str]
    created: list[str]
    updated: list[str]
    withdrawn: list[str] = []
    gaps: list[dict]


class PickupResponse(BaseModel):
    success: bool
    error: str | None = None
    task_id: str | None = None


class SplitOrderResponse(BaseModel):
    split_id: str
    order_id: str
    store_id: str
    order_status: str
    on_hold_status: str | None = None
    line_items: list[dict]
    time_stamps: dict[str, int]
    tpl_task_id: str | None = None
    tpl_status_code: str | None = None
    tpl_message: str | None = None
    stock_compensated: bool


class TrackingResponse(BaseModel):
    split_id: str
    order_status: str
    transitioned: bool


class NotificationLogResponse(BaseModel):
    id: str
    title: str
    markdown: str
    log_type: str
    viewed: bool
