"""Allocation API package."""

from allocation.api.routes import (
    notification_log_router,
    order_router,
    split_router,
    stock_router,
    store_router,
)

__all__ = ["store_router", "stock_router", "order_router", "split_router", "notification_log_router"]
