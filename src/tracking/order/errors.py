"""Errors raised by order lifecycle operations."""

from protean.exceptions import ValidationError


class IllegalTransition(ValidationError):
    """The requested status is not reachable from the order's current status."""

    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            {
                "status": [f"Cannot transition from {current_status} to {target_status}"],
                "current_status": [current_status],
            }
        )


class ConcurrentConflict(Exception):
    """The order's status changed between read and write; nothing was written.

    Callers re-read the order and decide whether to retry or to report that
    the order changed elsewhere.
    """

    def __init__(self, order_id: str, expected_status: str, actual_status: str | None, target_status: str):
        super().__init__(
            f"Order {order_id} moved from {expected_status} to {actual_status} "
            f"before it could be set to {target_status}"
        )
        self.order_id = order_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        self.target_status = target_status
