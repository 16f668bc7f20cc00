"""BDD tests for the order lifecycle."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, when

scenarios("features/order_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the order moves to "{status}" by "{actor}"'))
def _(transition, order_id, status, actor):
    transition(order_id, status, actor)


@when(parsers.cfparse('the order is moved to "{status}" by "{actor}"'))
def _(transition, lifecycle, order_id, status, actor):
    try:
        transition(order_id, status, actor)
    except ValidationError as exc:
        lifecycle["error"] = exc


@when(parsers.cfparse('the driver hands the order to "{name}" noting "{remarks}"'))
def _(transition, order_id, name, remarks):
    transition(order_id, "received", "driver", {"recipient_name": name, "delivery_remarks": remarks})
