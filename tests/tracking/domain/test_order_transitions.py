"""Tests for the order transition table and Order.transition_to guards."""

import random

import pytest
from protean.exceptions import ValidationError

from tracking.order.errors import IllegalTransition
from tracking.order.events import OrderStatusChanged
from tracking.order.order import (
    TERMINAL_STATUSES,
    TRACKING_STATUSES,
    Order,
    OrderStatus,
    can_transition,
    parse_status,
)

_FORWARD = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.RECEIVED,
    OrderStatus.COMPLETED,
]


def _make_order(status=OrderStatus.PENDING.value):
    order = Order.create(
        customer_id="cust-001",
        order_number=1,
        items_data=[{"product_id": "prod-001", "title": "Dates", "unit_price": 10.0, "quantity": 1}],
        pricing={"subtotal": 10.0, "discount_total": 0.0, "shipping_cost": 0.0, "total": 10.0},
        status=status,
    )
    order._events.clear()
    return order


def _metadata_for(target):
    if target == OrderStatus.RECEIVED:
        return {"recipient_name": "Jane Doe"}
    return {}


class TestTransitionTable:
    @pytest.mark.parametrize("current,target", list(zip(_FORWARD, _FORWARD[1:])))
    def test_adjacent_forward_edges_are_legal(self, current, target):
        assert can_transition(current.value, target.value)

    @pytest.mark.parametrize("current", _FORWARD[:-1])
    def test_cancel_from_every_non_terminal_state(self, current):
        assert can_transition(current.value, OrderStatus.CANCELLED.value)

    @pytest.mark.parametrize("terminal", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_terminal_states_have_no_exits(self, terminal):
        assert not any(can_transition(terminal.value, target.value) for target in OrderStatus)

    def test_skipping_a_step_is_illegal(self):
        assert not can_transition("pending", "shipped")
        assert not can_transition("confirmed", "in_transit")

    def test_going_back_is_illegal(self):
        assert not can_transition("shipped", "processing")
        assert not can_transition("received", "pending")

    def test_accepts_enum_members(self):
        assert can_transition(OrderStatus.SHIPPED, OrderStatus.IN_TRANSIT)

    def test_status_sets(self):
        assert TERMINAL_STATUSES == {"completed", "cancelled"}
        assert TRACKING_STATUSES == {"shipped", "in_transit"}

    def test_parse_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_status("teleported")
        assert "status" in exc.value.messages

    def test_every_state_reachable_from_pending(self):
        """Random walks over legal edges from pending end in a terminal state and visit every state."""
        rng = random.Random(20240601)
        visited = set()
        for _ in range(2000):
            current = OrderStatus.PENDING
            visited.add(current)
            steps = 0
            while current.value not in TERMINAL_STATUSES:
                options = [s for s in OrderStatus if can_transition(current.value, s.value)]
                assert options, f"{current.value} is non-terminal but has no exits"
                current = rng.choice(options)
                visited.add(current)
                steps += 1
                assert steps <= len(OrderStatus)
        assert visited == set(OrderStatus)


class TestTransitionTo:
    def test_forward_path_to_completed(self):
        order = _make_order()
        for target in _FORWARD[1:]:
            event = order.transition_to(target.value, "admin", **_metadata_for(target))
            assert isinstance(event, OrderStatusChanged)
            assert event.to_status == target.value
        assert order.status == OrderStatus.COMPLETED.value
        assert order.is_terminal

    def test_event_carries_transition_details(self):
        order = _make_order()
        event = order.transition_to("confirmed", "admin")

        assert event.order_id == str(order.id)
        assert event.customer_id == "cust-001"
        assert event.order_number == 1
        assert event.from_status == "pending"
        assert event.to_status == "confirmed"
        assert event.actor == "admin"
        assert event.occurred_at is not None

    def test_same_status_is_a_no_op(self):
        order = _make_order(OrderStatus.SHIPPED.value)
        before = order.updated_at

        assert order.transition_to("shipped", "driver") is None
        assert order.status == "shipped"
        assert order.updated_at == before
        assert order._events == []

    def test_illegal_transition_leaves_order_unchanged(self):
        order = _make_order()
        with pytest.raises(IllegalTransition) as exc:
            order.transition_to("shipped", "admin")

        assert exc.value.current_status == "pending"
        assert exc.value.target_status == "shipped"
        assert exc.value.messages["current_status"] == ["pending"]
        assert order.status == "pending"
        assert order._events == []

    def test_illegal_transition_is_a_validation_error(self):
        order = _make_order(OrderStatus.COMPLETED.value)
        with pytest.raises(ValidationError):
            order.transition_to("cancelled", "admin")

    def test_received_requires_recipient_name(self):
        order = _make_order(OrderStatus.IN_TRANSIT.value)
        with pytest.raises(ValidationError) as exc:
            order.transition_to("received", "driver")
        assert "recipient_name" in exc.value.messages
        assert order.status == "in_transit"

    def test_received_rejects_blank_recipient_name(self):
        order = _make_order(OrderStatus.IN_TRANSIT.value)
        with pytest.raises(ValidationError):
            order.transition_to("received", "driver", recipient_name="   ")

    def test_received_records_recipient_and_remarks(self):
        order = _make_order(OrderStatus.IN_TRANSIT.value)
        event = order.transition_to("received", "driver", recipient_name=" Jane Doe ", delivery_remarks="left at door")

        assert order.recipient_name == "Jane Doe"
        assert order.delivery_remarks == "left at door"
        assert event.recipient_name == "Jane Doe"
        assert event.delivery_remarks == "left at door"
        patch = order.transition_patch()
        assert patch["status"] == "received"
        assert patch["recipient_name"] == "Jane Doe"
        assert patch["delivery_remarks"] == "left at door"

    def test_unknown_actor_is_rejected_before_any_change(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.transition_to("confirmed", "robot")
        assert "actor" in exc.value.messages
        assert order.status == "pending"

    def test_cancel_from_in_transit(self):
        order = _make_order(OrderStatus.IN_TRANSIT.value)
        event = order.transition_to("cancelled", "customer")
        assert event.from_status == "in_transit"
        assert order.is_terminal
        assert not order.is_tracking

    def test_transition_patch_without_delivery_fields(self):
        order = _make_order()
        order.transition_to("confirmed", "system")
        patch = order.transition_patch()
        assert set(patch) == {"status", "updated_at"}
        assert patch["status"] == "confirmed"
