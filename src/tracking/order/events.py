"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from tracking.domain import tracking


@tracking.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    order_number = Integer(required=True)
    status = String(required=True)
    total = Float(required=True)
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@tracking.event(part_of="Order")
class OrderStatusChanged:
    """An order moved along the transition table. One event per genuine transition."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    order_number = Integer()
    from_status = String(required=True)
    to_status = String(required=True)
    actor = String(required=True)
    recipient_name = String()
    delivery_remarks = Text()
    occurred_at = DateTime(required=True)
