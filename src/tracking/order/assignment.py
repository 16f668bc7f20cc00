"""Field-level order updates outside the status machine."""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError

from tracking.geo import validate_coordinate
from tracking.order.order import TERMINAL_STATUSES
from tracking.store.port import ORDERS, DocumentStore, PreconditionFailed
from tracking.utils.clock import to_iso, utc_now

logger = structlog.get_logger(__name__)


async def _read(store: DocumentStore, order_id: str) -> dict:
    document = await store.get(ORDERS, order_id)
    if document is None:
        raise ObjectNotFoundError(f"Order with id {order_id} does not exist")
    return document


async def assign_delivery_agent(store: DocumentStore, order_id: str, agent_id: str) -> dict:
    """Assign (or reassign) the delivery agent. Last write wins."""
    if not agent_id:
        raise ValidationError({"delivery_agent_id": ["Delivery agent is required"]})

    document = await _read(store, order_id)
    if document["status"] in TERMINAL_STATUSES:
        raise ValidationError({"status": [f"Cannot assign a delivery agent to a {document['status']} order"]})

    updated = await store.patch(
        ORDERS,
        order_id,
        {"delivery_agent_id": agent_id, "updated_at": to_iso(utc_now())},
    )
    logger.info("Delivery agent assigned", order_id=order_id, delivery_agent_id=agent_id)
    return updated


async def set_delivery_point(store: DocumentStore, order_id: str, lat: float, lng: float) -> dict:
    """Record the destination coordinates. Once set, the destination never changes."""
    if not validate_coordinate(lat, lng):
        raise ValidationError({"delivery_lat": ["Delivery point is not a valid coordinate"]})

    document = await _read(store, order_id)
    if document.get("delivery_lat") is not None:
        raise ValidationError({"delivery_lat": ["Delivery point is already set"]})

    try:
        updated = await store.patch(
            ORDERS,
            order_id,
            {"delivery_lat": float(lat), "delivery_lng": float(lng), "updated_at": to_iso(utc_now())},
            expected={"delivery_lat": None},
        )
    except PreconditionFailed as e:
        raise ValidationError({"delivery_lat": ["Delivery point is already set"]}) from e

    logger.info("Delivery point set", order_id=order_id, lat=lat, lng=lng)
    return updated
