"""Shared BDD fixtures and step definitions for the order lifecycle."""

import asyncio

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

from tracking.notification.dispatch import NotificationDispatcher
from tracking.order.checkout import Checkout
from tracking.order.errors import IllegalTransition
from tracking.order.state_machine import OrderStateMachine
from tracking.store.port import ORDERS


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def lifecycle(store, push):
    """Collects what a scenario produced: events, pushes and the last error."""
    events = []
    dispatcher = NotificationDispatcher(channel=push)
    machine = OrderStateMachine(store, listeners=[events.append, dispatcher.on_transition])
    return {"machine": machine, "dispatcher": dispatcher, "events": events, "push": push, "error": None}


def _transition(lifecycle, order_id, status, actor, metadata=None):
    async def run():
        try:
            await lifecycle["machine"].request_transition(order_id, status, actor, metadata)
        finally:
            await lifecycle["dispatcher"].flush()

    asyncio.run(run())


@pytest.fixture()
def transition(lifecycle):
    """Apply a status change through the state machine of this scenario."""

    def _apply(order_id, status, actor, metadata=None):
        _transition(lifecycle, order_id, status, actor, metadata)

    return _apply


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a cash on delivery order was placed", target_fixture="order_id")
def _(store, order_payload):
    result = asyncio.run(Checkout(store).place_order(**order_payload))
    return str(result.order.id)


@given("the order is in transit")
def _(lifecycle, order_id):
    for status in ("confirmed", "processing", "shipped", "in_transit"):
        _transition(lifecycle, order_id, status, "admin")
    lifecycle["events"].clear()
    lifecycle["push"].reset()


@given("the order was cancelled")
def _(lifecycle, order_id):
    _transition(lifecycle, order_id, "cancelled", "customer")
    lifecycle["events"].clear()
    lifecycle["push"].reset()


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(store, order_id, status):
    assert asyncio.run(store.get(ORDERS, order_id))["status"] == status


@then(parsers.cfparse("{count:d} status change events were emitted"))
def _(lifecycle, count):
    assert len(lifecycle["events"]) == count


@then(parsers.cfparse("{count:d} push notifications were sent"))
def _(lifecycle, count):
    assert len(lifecycle["push"].sent_pushes) == count


@then(parsers.cfparse('the delivery notification mentions "{text}"'))
def _(lifecycle, text):
    delivered = [p for p in lifecycle["push"].sent_pushes if p["data"]["status"] == "received"]
    assert len(delivered) == 1
    assert text in delivered[0]["body"]


@then("the transition is rejected as illegal")
def _(lifecycle):
    assert isinstance(lifecycle["error"], IllegalTransition)


@then("the transition is rejected with a validation error")
def _(lifecycle):
    assert isinstance(lifecycle["error"], ValidationError)
    assert not isinstance(lifecycle["error"], IllegalTransition)
