"""FastAPI routes for the Tracking domain."""

from fastapi import APIRouter, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from tracking.api.schemas import (
    AssignAgentRequest,
    CoordinateSchema,
    CreateDiscountRequest,
    DiscountResponse,
    NotificationListResponse,
    NotificationResponse,
    OrderResponse,
    PlaceOrderRequest,
    RouteEstimateResponse,
    StatusResponse,
    TransitionRequest,
    TransitionResponse,
)
from tracking.discount.discount import Discount, active_discount_for
from tracking.geo import Coordinate, coordinate
from tracking.notification import inbox
from tracking.notification.dispatch import get_dispatcher
from tracking.notification.notification import Notification
from tracking.order.assignment import assign_delivery_agent, set_delivery_point
from tracking.order.checkout import Checkout
from tracking.order.errors import ConcurrentConflict
from tracking.order.state_machine import OrderStateMachine, load_order
from tracking.routing.planner import RoutePlanner
from tracking.store import get_store
from tracking.store.port import ORDERS


def _order_response(document: dict) -> OrderResponse:
    return OrderResponse.model_validate(document)


def _notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=str(notification.id),
        recipient_id=str(notification.recipient_id),
        order_id=str(notification.order_id) if notification.order_id else None,
        notification_type=notification.notification_type,
        title=notification.title,
        body=notification.body,
        read=notification.read,
        created_at=notification.created_at,
        expires_at=notification.expires_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest) -> OrderResponse:
    store = get_store()
    checkout = Checkout(store, listeners=[get_dispatcher().on_order_placed])
    result = await checkout.place_order(
        customer_id=body.customer_id,
        items=[item.model_dump() for item in body.items],
        shipping_address=body.shipping_address,
        shipping_phone=body.shipping_phone,
        shipping_zone=body.shipping_zone,
        shipping_type=body.shipping_type,
        shipping_cost=body.shipping_cost,
        payment_method=body.payment_method,
        payment_id=body.payment_id,
        delivery_lat=body.delivery_lat,
        delivery_lng=body.delivery_lng,
    )
    document = await store.get(ORDERS, str(result.order.id))
    return _order_response(document)


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(customer_id: str | None = None, delivery_agent_id: str | None = None) -> list[OrderResponse]:
    if customer_id:
        documents = await get_store().query(ORDERS, "customer_id", customer_id)
    elif delivery_agent_id:
        documents = await get_store().query(ORDERS, "delivery_agent_id", delivery_agent_id)
    else:
        raise ValidationError({"customer_id": ["Filter by customer_id or delivery_agent_id"]})
    documents.sort(key=lambda doc: doc["order_number"], reverse=True)
    return [_order_response(doc) for doc in documents]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    document = await get_store().get(ORDERS, order_id)
    if document is None:
        raise ObjectNotFoundError(f"Order with id {order_id} does not exist")
    return _order_response(document)


@order_router.put("/{order_id}/status", response_model=TransitionResponse)
async def change_status(order_id: str, body: TransitionRequest) -> TransitionResponse:
    store = get_store()
    machine = OrderStateMachine(store, listeners=[get_dispatcher().on_transition])
    try:
        result = await machine.request_transition(
            order_id,
            body.status,
            body.actor,
            {"recipient_name": body.recipient_name, "delivery_remarks": body.delivery_remarks},
        )
    except ConcurrentConflict as e:
        current = await store.get(ORDERS, order_id)
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Order changed elsewhere",
                "current_status": current["status"] if current else e.actual_status,
            },
        ) from e
    return TransitionResponse(order_id=order_id, status=result.order.status, changed=result.event is not None)


@order_router.put("/{order_id}/delivery-agent", response_model=OrderResponse)
async def assign_agent(order_id: str, body: AssignAgentRequest) -> OrderResponse:
    document = await assign_delivery_agent(get_store(), order_id, body.delivery_agent_id)
    return _order_response(document)


@order_router.put("/{order_id}/destination", response_model=OrderResponse)
async def set_destination(order_id: str, body: CoordinateSchema) -> OrderResponse:
    document = await set_delivery_point(get_store(), order_id, body.lat, body.lng)
    return _order_response(document)


@order_router.get("/{order_id}/route", response_model=RouteEstimateResponse)
async def route_estimate(order_id: str, lat: float | None = None, lng: float | None = None) -> RouteEstimateResponse:
    order = await load_order(get_store(), order_id)
    if order.delivery_lat is None or order.delivery_lng is None:
        raise ValidationError({"delivery_lat": ["Order has no delivery point"]})

    if lat is not None and lng is not None:
        try:
            origin = coordinate(lat, lng)
        except ValueError as e:
            raise ValidationError({"origin": [str(e)]}) from e
    elif order.driver_lat is not None and order.driver_lng is not None:
        origin = Coordinate(lat=order.driver_lat, lng=order.driver_lng)
    else:
        raise ValidationError({"origin": ["No driver position available"]})

    destination = Coordinate(lat=order.delivery_lat, lng=order.delivery_lng)
    estimate = await RoutePlanner().estimate(origin, destination, order_id=order_id)
    return RouteEstimateResponse(
        order_id=order_id,
        distance_meters=estimate.distance_meters,
        duration_seconds=estimate.duration_seconds,
        polyline=[CoordinateSchema(lat=p.lat, lng=p.lng) for p in estimate.polyline],
        degraded=estimate.degraded,
    )


# ---------------------------------------------------------------------------
# Notification Router
# ---------------------------------------------------------------------------
notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


@notification_router.get("", response_model=NotificationListResponse)
async def list_notifications(recipient_id: str) -> NotificationListResponse:
    notifications = inbox.list_for(recipient_id)
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in notifications],
        unread_count=sum(1 for n in notifications if not n.read),
    )


@notification_router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: str) -> NotificationResponse:
    return _notification_response(inbox.mark_read(notification_id))


@notification_router.delete("/{notification_id}", response_model=StatusResponse)
async def delete_notification(notification_id: str) -> StatusResponse:
    inbox.delete(notification_id)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Discount Router
# ---------------------------------------------------------------------------
discount_router = APIRouter(prefix="/discounts", tags=["discounts"])


def _discount_response(discount: Discount) -> DiscountResponse:
    return DiscountResponse(
        id=str(discount.id),
        product_id=discount.product_id,
        discount_percentage=discount.discount_percentage,
        start_date=discount.start_date,
        end_date=discount.end_date,
    )


@discount_router.post("", status_code=201, response_model=DiscountResponse)
async def create_discount(body: CreateDiscountRequest) -> DiscountResponse:
    discount = Discount.create(
        product_id=body.product_id,
        discount_percentage=body.discount_percentage,
        start_date=body.start_date,
        end_date=body.end_date,
    )
    current_domain.repository_for(Discount).add(discount)
    return _discount_response(discount)


@discount_router.get("/{product_id}/active", response_model=DiscountResponse)
async def get_active_discount(product_id: str) -> DiscountResponse:
    discount = active_discount_for(product_id)
    if discount is None:
        raise ObjectNotFoundError(f"No active discount for product {product_id}")
    return _discount_response(discount)
