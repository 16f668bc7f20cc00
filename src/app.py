"""ShopTrack FastAPI application.

HTTP surface for order fulfillment tracking. Every request runs inside the
tracking domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# PROTEAN_ENV selects the config overlay applied by Protean.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from tracking.domain import tracking
from tracking.utils.logging import add_context, clear_context, configure_logging

configure_logging()
tracking.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ShopTrack API",
    description="Order fulfillment tracking API",
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
    """Push the tracking domain context and bind request log context."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    with tracking.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from tracking.api import discount_router, notification_router, order_router  # noqa: E402

app.include_router(order_router)
app.include_router(notification_router)
app.include_router(discount_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domains": {"tracking": {"name": tracking.name}}})
