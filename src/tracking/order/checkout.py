"""Checkout: turns a cart into a persisted order.

Pricing is computed here once and frozen on the order: every line gets the
discount active for its product at checkout time. Card orders arrive paid
(payment is authorised before checkout) and start ``confirmed``; cash on
delivery orders start ``pending``.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.exceptions import ValidationError

from tracking.discount.discount import Discount, active_discount_for, discount_amount, select_discount
from tracking.geo import validate_coordinate
from tracking.geocoding import locate
from tracking.geocoding.port import GeocodingPort
from tracking.order.events import OrderPlaced
from tracking.order.order import Order, OrderStatus, PaymentMethod, ShippingType
from tracking.store.port import COUNTERS, ORDERS, DocumentStore

logger = structlog.get_logger(__name__)

ORDER_SEQUENCE_ID = "orders"
ORDER_SEQUENCE_FIELD = "last_order_number"

PlacementListener = Callable[[OrderPlaced], None]


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    event: OrderPlaced


def price_items(items: list[dict], shipping_cost: float = 0.0, discounts: Iterable[Discount] | None = None, at=None):
    """Apply active discounts per line and compute the frozen pricing.

    Returns:
        (items_data, pricing) where pricing has subtotal, discount_total,
        shipping_cost and total
    """
    discounts = list(discounts) if discounts is not None else None
    priced = []
    subtotal = 0.0
    discount_total = 0.0
    for item in items:
        product_id = str(item["product_id"])
        if discounts is None:
            discount = active_discount_for(product_id, at)
        else:
            discount = select_discount(discounts, product_id, at)
        percentage = discount.discount_percentage if discount else 0.0

        unit_price = float(item["unit_price"])
        quantity = int(item["quantity"])
        subtotal += unit_price * quantity
        discount_total += discount_amount(unit_price, percentage) * quantity
        priced.append(
            {
                "product_id": product_id,
                "title": item["title"],
                "unit_price": unit_price,
                "quantity": quantity,
                "selected_variant": item.get("selected_variant"),
                "discount_percentage": percentage,
            }
        )

    pricing = {
        "subtotal": subtotal,
        "discount_total": discount_total,
        "shipping_cost": float(shipping_cost),
        "total": subtotal - discount_total + float(shipping_cost),
    }
    return priced, pricing


class Checkout:
    def __init__(
        self,
        store: DocumentStore,
        geocoder: GeocodingPort | None = None,
        listeners: Iterable[PlacementListener] = (),
    ) -> None:
        self.store = store
        self.geocoder = geocoder
        self.listeners: list[PlacementListener] = list(listeners)

    async def place_order(
        self,
        customer_id: str,
        items: list[dict],
        shipping_address: str | None = None,
        shipping_phone: str | None = None,
        shipping_zone: str | None = None,
        shipping_type: str = ShippingType.SAVED.value,
        shipping_cost: float = 0.0,
        payment_method: str = PaymentMethod.CASH_ON_DELIVERY.value,
        payment_id: str | None = None,
        delivery_lat: float | None = None,
        delivery_lng: float | None = None,
        discounts: Iterable[Discount] | None = None,
        at: datetime | None = None,
    ) -> CheckoutResult:
        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})
        try:
            method = PaymentMethod(payment_method)
        except ValueError:
            raise ValidationError({"payment_method": [f"Unknown payment method: {payment_method}"]}) from None
        if method == PaymentMethod.CARD and not payment_id:
            raise ValidationError({"payment_id": ["Card orders need a successful payment reference"]})
        try:
            shipping_type = ShippingType(shipping_type).value
        except ValueError:
            raise ValidationError({"shipping_type": [f"Unknown shipping type: {shipping_type}"]}) from None
        if (delivery_lat is None) != (delivery_lng is None):
            raise ValidationError({"delivery_lat": ["Latitude and longitude must be given together"]})
        if delivery_lat is not None and not validate_coordinate(delivery_lat, delivery_lng):
            raise ValidationError({"delivery_lat": ["Delivery point is not a valid coordinate"]})

        items_data, pricing = price_items(items, shipping_cost, discounts, at)
        status = OrderStatus.CONFIRMED if method == PaymentMethod.CARD else OrderStatus.PENDING

        if delivery_lat is None and shipping_address:
            point = await locate(shipping_address, self.geocoder)
            if point is not None:
                delivery_lat, delivery_lng = point.lat, point.lng

        order_number = await self.store.increment(COUNTERS, ORDER_SEQUENCE_ID, ORDER_SEQUENCE_FIELD)
        order = Order.create(
            customer_id=customer_id,
            order_number=order_number,
            items_data=items_data,
            pricing=pricing,
            status=status.value,
            payment_method=method.value,
            payment_id=payment_id,
            shipping_address=shipping_address,
            shipping_phone=shipping_phone,
            shipping_zone=shipping_zone,
            shipping_type=shipping_type,
            delivery_lat=delivery_lat,
            delivery_lng=delivery_lng,
        )
        document = await self.store.insert(ORDERS, str(order.id), order.to_document())
        order.revision = document["revision"]
        event = order._events[-1]

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order_number,
            status=order.status,
            total=order.pricing.total,
        )
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error("Placement listener failed", order_id=str(order.id), error=str(e))

        return CheckoutResult(order=order, event=event)
