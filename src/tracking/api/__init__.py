"""Tracking domain API package."""

from tracking.api.routes import discount_router, notification_router, order_router

__all__ = ["order_router", "notification_router", "discount_router"]
