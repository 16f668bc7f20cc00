"""Tracking bounded context: Order Fulfillment Tracking.

Owns the order lifecycle after checkout: the status transition table, the
shared order record, live driver positions, route estimates and the
notifications fired on every status change. The order record
lives in an external document store so every client can subscribe to it.
"""

from protean.domain import Domain

tracking = Domain(name="tracking")
