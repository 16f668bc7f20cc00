"""Order aggregate: the shared record every actor watches.

The order lives in the document store as a flat document so that customers,
drivers and operators can all subscribe to it. This aggregate is the domain
view of that document: it owns the transition table and the monetary
invariant, and converts to and from the stored shape.

State Machine (8 states):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → IN_TRANSIT → RECEIVED → COMPLETED
    CANCELLED (from any non-terminal state)
"""

import math
from enum import Enum
from uuid import uuid4

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from tracking.domain import tracking
from tracking.order.errors import IllegalTransition
from tracking.order.events import OrderPlaced, OrderStatusChanged
from tracking.utils.clock import parse_iso, to_iso, utc_now


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Actor(Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"
    ADMIN = "admin"
    SYSTEM = "system"


class ShippingType(Enum):
    SAVED = "saved"
    NEW = "new"


class PaymentMethod(Enum):
    CARD = "card"
    CASH_ON_DELIVERY = "cash_on_delivery"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED},
    OrderStatus.IN_TRANSIT: {OrderStatus.RECEIVED, OrderStatus.CANCELLED},
    OrderStatus.RECEIVED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Driver location is streamed only in these states
TRACKING_STATUSES = frozenset({OrderStatus.SHIPPED.value, OrderStatus.IN_TRANSIT.value})

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED.value, OrderStatus.CANCELLED.value})

_MONEY_TOLERANCE = 1e-6


def can_transition(current, target) -> bool:
    """True when ``target`` is a legal next status for ``current``."""
    return OrderStatus(target) in _VALID_TRANSITIONS[OrderStatus(current)]


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@tracking.value_object(part_of="Order")
class OrderPricing:
    """Monetary summary frozen at checkout; never recomputed from the items."""

    subtotal = Float(default=0.0, min_value=0.0)
    discount_total = Float(default=0.0, min_value=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0)

    @invariant.post
    def total_must_match_components(self):
        expected = self.subtotal - self.discount_total + self.shipping_cost
        if not math.isclose(self.total, expected, rel_tol=1e-9, abs_tol=_MONEY_TOLERANCE):
            raise ValidationError(
                {"total": [f"Total {self.total} does not equal subtotal - discount_total + shipping_cost ({expected})"]}
            )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@tracking.entity(part_of="Order")
class OrderItem:
    """A line item captured at checkout. Immutable once the order exists."""

    product_id = String(required=True, max_length=255)
    title = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    selected_variant = String(max_length=255)
    discount_percentage = Float(default=0.0, min_value=0.0, max_value=100.0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "title": self.title,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "selected_variant": self.selected_variant,
            "discount_percentage": self.discount_percentage,
        }


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@tracking.aggregate
class Order:
    order_number = Integer(required=True, min_value=1)
    customer_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH_ON_DELIVERY.value)
    payment_id = String(max_length=255)

    shipping_address = Text()
    shipping_phone = String(max_length=50)
    shipping_zone = String(max_length=100)
    shipping_type = String(choices=ShippingType, default=ShippingType.SAVED.value)

    recipient_name = String(max_length=255)
    delivery_remarks = Text()

    delivery_lat = Float()
    delivery_lng = Float()
    driver_lat = Float()
    driver_lng = Float()
    driver_accuracy = Float()
    driver_location_at = DateTime()
    delivery_agent_id = Identifier()

    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        order_number,
        items_data,
        pricing,
        status=OrderStatus.PENDING.value,
        payment_method=PaymentMethod.CASH_ON_DELIVERY.value,
        payment_id=None,
        shipping_address=None,
        shipping_phone=None,
        shipping_zone=None,
        shipping_type=ShippingType.SAVED.value,
        delivery_lat=None,
        delivery_lng=None,
    ):
        """Create a new order from checkout data.

        Args:
            items_data: List of dicts with product_id, title, unit_price,
                        quantity and optionally selected_variant, discount_percentage.
            pricing: Dict with subtotal, discount_total, shipping_cost, total.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = utc_now()
        order = cls(
            id=str(uuid4()),
            order_number=order_number,
            customer_id=customer_id,
            status=status,
            pricing=OrderPricing(**pricing),
            payment_method=payment_method,
            payment_id=payment_id,
            shipping_address=shipping_address,
            shipping_phone=shipping_phone,
            shipping_zone=shipping_zone,
            shipping_type=shipping_type,
            delivery_lat=delivery_lat,
            delivery_lng=delivery_lng,
            created_at=now,
            updated_at=now,
        )
        order.add_items([OrderItem(**item) for item in items_data])

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                order_number=order_number,
                status=status,
                total=order.pricing.total,
                item_count=sum(item.quantity for item in order.items),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_tracking(self) -> bool:
        return self.status in TRACKING_STATUSES

    def transition_to(self, target_status, actor, recipient_name=None, delivery_remarks=None):
        """Move to ``target_status`` and return the OrderStatusChanged event.

        Returns None (and raises nothing) when the order is already in the
        target status. Nothing on the order changes when validation fails.
        """
        target = parse_status(target_status)
        current = OrderStatus(self.status)
        if target == current:
            return None

        if target not in _VALID_TRANSITIONS[current]:
            raise IllegalTransition(current.value, target.value)

        if target == OrderStatus.RECEIVED:
            if not isinstance(recipient_name, str) or not recipient_name.strip():
                raise ValidationError({"recipient_name": ["Recipient name is required to mark an order received"]})

        try:
            actor = Actor(actor).value
        except ValueError:
            raise ValidationError({"actor": [f"Unknown actor: {actor}"]}) from None

        now = utc_now()
        self.status = target.value
        if target == OrderStatus.RECEIVED:
            self.recipient_name = recipient_name.strip()
            self.delivery_remarks = delivery_remarks or None
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                order_number=self.order_number,
                from_status=current.value,
                to_status=target.value,
                actor=actor,
                recipient_name=self.recipient_name if target == OrderStatus.RECEIVED else None,
                delivery_remarks=self.delivery_remarks if target == OrderStatus.RECEIVED else None,
                occurred_at=now,
            )
        )
        return self._events[-1]

    def transition_patch(self) -> dict:
        """Fields written by the last status transition."""
        fields = {"status": self.status, "updated_at": to_iso(self.updated_at)}
        if self.status == OrderStatus.RECEIVED.value:
            fields["recipient_name"] = self.recipient_name
            fields["delivery_remarks"] = self.delivery_remarks
        return fields

    # -------------------------------------------------------------------
    # Document mapping
    # -------------------------------------------------------------------
    def to_document(self) -> dict:
        """Flat record stored in the ``orders`` collection (store-owned fields excluded)."""
        return {
            "order_number": self.order_number,
            "customer_id": str(self.customer_id),
            "status": self.status,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.pricing.subtotal,
            "discount_total": self.pricing.discount_total,
            "shipping_cost": self.pricing.shipping_cost,
            "total": self.pricing.total,
            "payment_method": self.payment_method,
            "payment_id": self.payment_id,
            "shipping_address": self.shipping_address,
            "shipping_phone": self.shipping_phone,
            "shipping_zone": self.shipping_zone,
            "shipping_type": self.shipping_type,
            "recipient_name": self.recipient_name,
            "delivery_remarks": self.delivery_remarks,
            "delivery_lat": self.delivery_lat,
            "delivery_lng": self.delivery_lng,
            "driver_lat": self.driver_lat,
            "driver_lng": self.driver_lng,
            "driver_accuracy": self.driver_accuracy,
            "driver_location_at": to_iso(self.driver_location_at),
            "delivery_agent_id": str(self.delivery_agent_id) if self.delivery_agent_id else None,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_document(cls, document: dict):
        return cls(
            id=document["id"],
            order_number=document["order_number"],
            customer_id=document["customer_id"],
            status=document["status"],
            items=[OrderItem(**item) for item in document.get("items", [])],
            pricing=OrderPricing(
                subtotal=document.get("subtotal", 0.0),
                discount_total=document.get("discount_total", 0.0),
                shipping_cost=document.get("shipping_cost", 0.0),
                total=document.get("total", 0.0),
            ),
            payment_method=document.get("payment_method") or PaymentMethod.CASH_ON_DELIVERY.value,
            payment_id=document.get("payment_id"),
            shipping_address=document.get("shipping_address"),
            shipping_phone=document.get("shipping_phone"),
            shipping_zone=document.get("shipping_zone"),
            shipping_type=document.get("shipping_type") or ShippingType.SAVED.value,
            recipient_name=document.get("recipient_name"),
            delivery_remarks=document.get("delivery_remarks"),
            delivery_lat=document.get("delivery_lat"),
            delivery_lng=document.get("delivery_lng"),
            driver_lat=document.get("driver_lat"),
            driver_lng=document.get("driver_lng"),
            driver_accuracy=document.get("driver_accuracy"),
            driver_location_at=parse_iso(document.get("driver_location_at")),
            delivery_agent_id=document.get("delivery_agent_id"),
            revision=document.get("revision", 0),
            created_at=parse_iso(document.get("created_at")),
            updated_at=parse_iso(document.get("updated_at")),
        )
