"""Pydantic request/response schemas for the Tracking API.

These are external contracts, separate from the Order document and the
Protean aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    title: str
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    selected_variant: str | None = None


class OrderItemView(OrderItemSchema):
    discount_percentage: float = 0.0


class CoordinateSchema(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemSchema]
    shipping_address: str | None = None
    shipping_phone: str | None = None
    shipping_zone: str | None = None
    shipping_type: str = "saved"
    shipping_cost: float = Field(default=0.0, ge=0)
    payment_method: str = "cash_on_delivery"
    payment_id: str | None = None
    delivery_lat: float | None = None
    delivery_lng: float | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [
                        {"product_id": "prod-001", "title": "Dates 1kg", "unit_price": 12.5, "quantity": 2},
                    ],
                    "shipping_address": "King Fahd Rd, Riyadh",
                    "shipping_phone": "+966500000000",
                    "payment_method": "cash_on_delivery",
                }
            ]
        }
    }


class TransitionRequest(BaseModel):
    status: str
    actor: str
    recipient_name: str | None = None
    delivery_remarks: str | None = None


class AssignAgentRequest(BaseModel):
    delivery_agent_id: str


# ---------------------------------------------------------------------------
# Order Response Schemas
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    id: str
    order_number: int
    customer_id: str
    status: str
    items: list[OrderItemView]
    subtotal: float
    discount_total: float
    shipping_cost: float
    total: float
    payment_method: str | None = None
    shipping_address: str | None = None
    shipping_phone: str | None = None
    shipping_zone: str | None = None
    shipping_type: str | None = None
    recipient_name: str | None = None
    delivery_remarks: str | None = None
    delivery_lat: float | None = None
    delivery_lng: float | None = None
    driver_lat: float | None = None
    driver_lng: float | None = None
    delivery_agent_id: str | None = None
    revision: int
    created_at: str | None = None
    updated_at: str | None = None


class TransitionResponse(BaseModel):
    order_id: str
    status: str
    changed: bool


class RouteEstimateResponse(BaseModel):
    order_id: str
    distance_meters: float
    duration_seconds: float | None = None
    polyline: list[CoordinateSchema] = []
    degraded: bool = False


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
class NotificationResponse(BaseModel):
    id: str
    recipient_id: str
    order_id: str | None = None
    notification_type: str
    title: str
    body: str
    read: bool
    created_at: datetime | None = None
    expires_at: datetime | None = None


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------
class CreateDiscountRequest(BaseModel):
    product_id: str
    discount_percentage: float = Field(ge=0, le=100)
    start_date: datetime
    end_date: datetime


class DiscountResponse(BaseModel):
    id: str
    product_id: str
    discount_percentage: float
    start_date: datetime
    end_date: datetime
