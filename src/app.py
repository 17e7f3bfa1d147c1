"""Storeflow FastAPI application.

Web server that processes allocation commands synchronously via HTTP. Every
request runs inside the allocation domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → event_processing = "sync"  (side effects fire after the UoW commits)
#   - "production" → event_processing = "async" (side effects fire via Engine)
from allocation.domain import allocation  # noqa: E402
from allocation.utils.logging import add_context, clear_context
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

allocation.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storeflow API",
    description="Store network fulfillment: allocation, split orders and hybrid stock",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the allocation domain context for each request."""
    add_context(path=request.url.path)
    try:
        with allocation.domain_context():
            return await call_next(request)
    finally:
        clear_context()


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from allocation.api import (  # noqa: E402
    notification_log_router,
    order_router,
    split_router,
    stock_router,
    store_router,
)

app.include_router(store_router)
app.include_router(stock_router)
app.include_router(order_router)
app.include_router(split_router)
app.include_router(notification_log_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": allocation.name})
