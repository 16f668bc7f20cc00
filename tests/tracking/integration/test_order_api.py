"""Integration tests for the tracking API endpoints via TestClient."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers

from tracking.api.routes import discount_router, notification_router, order_router
from tracking.order.errors import ConcurrentConflict
from tracking.order.state_machine import OrderStateMachine


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(notification_router)
    app.include_router(discount_router)
    register_exception_handlers(app)
    return TestClient(app)


def _place_order(client, **overrides):
    """Helper: POST /orders and return the created order."""
    payload = {
        "customer_id": "cust-api-001",
        "items": [
            {"product_id": "prod-001", "title": "Dates 1kg", "unit_price": 40.0, "quantity": 2},
        ],
        "shipping_address": "King Fahd Rd, Riyadh",
        "shipping_phone": "+966500000000",
        "shipping_cost": 10.0,
        "delivery_lat": 24.7136,
        "delivery_lng": 46.6753,
    }
    payload.update(overrides)
    response = client.post("/orders", json=payload)
    assert response.status_code == 201
    return response.json()


def _set_status(client, order_id, status, actor="admin", **extra):
    return client.put(f"/orders/{order_id}/status", json={"status": status, "actor": actor, **extra})


def _advance_to_in_transit(client, order_id):
    """Helper: pending → confirmed → processing → shipped → in_transit."""
    for status in ("confirmed", "processing", "shipped", "in_transit"):
        assert _set_status(client, order_id, status).status_code == 200


class TestPlaceOrderEndpoint:
    def test_place_order(self, client):
        order = _place_order(client)
        assert order["status"] == "pending"
        assert order["order_number"] == 1
        assert order["total"] == 90.0
        assert order["revision"] == 1

    def test_card_order_starts_confirmed(self, client):
        order = _place_order(client, payment_method="card", payment_id="pay-001")
        assert order["status"] == "confirmed"

    def test_empty_items_rejected(self, client):
        response = client.post("/orders", json={"customer_id": "c", "items": []})
        assert response.status_code == 400

    def test_invalid_quantity_rejected_by_schema(self, client):
        response = client.post(
            "/orders",
            json={"customer_id": "c", "items": [{"product_id": "p", "title": "t", "unit_price": 1, "quantity": 0}]},
        )
        assert response.status_code == 422

    def test_placement_notifies_customer(self, client):
        _place_order(client)
        response = client.get("/notifications", params={"recipient_id": "cust-api-001"})
        assert response.status_code == 200
        data = response.json()
        assert data["unread_count"] == 1
        assert data["notifications"][0]["notification_type"] == "OrderReceived"


class TestReadOrders:
    def test_get_order(self, client):
        order = _place_order(client)
        response = client.get(f"/orders/{order['id']}")
        assert response.status_code == 200
        assert response.json()["customer_id"] == "cust-api-001"

    def test_get_missing_order(self, client):
        assert client.get("/orders/does-not-exist").status_code == 404

    def test_list_by_customer_newest_first(self, client):
        _place_order(client)
        _place_order(client)
        _place_order(client, customer_id="someone-else")
        response = client.get("/orders", params={"customer_id": "cust-api-001"})
        assert [o["order_number"] for o in response.json()] == [2, 1]

    def test_list_requires_a_filter(self, client):
        assert client.get("/orders").status_code == 400


class TestStatusEndpoint:
    def test_full_lifecycle(self, client):
        order_id = _place_order(client)["id"]
        _advance_to_in_transit(client, order_id)

        response = _set_status(
            client, order_id, "received", actor="driver", recipient_name="Jane Doe", delivery_remarks="left at door"
        )
        assert response.status_code == 200
        assert response.json() == {"order_id": order_id, "status": "received", "changed": True}
        assert _set_status(client, order_id, "completed", actor="system").status_code == 200

        order = client.get(f"/orders/{order_id}").json()
        assert order["status"] == "completed"
        assert order["recipient_name"] == "Jane Doe"

        notifications = client.get("/notifications", params={"recipient_id": "cust-api-001"}).json()
        types = {n["notification_type"] for n in notifications["notifications"]}
        assert types == {"OrderReceived", "OrderConfirmed", "OrderShipped", "OrderInTransit", "OrderDelivered"}

    def test_same_status_is_a_no_op(self, client):
        order_id = _place_order(client)["id"]
        response = _set_status(client, order_id, "pending")
        assert response.status_code == 200
        assert response.json()["changed"] is False

    def test_illegal_transition(self, client):
        order_id = _place_order(client)["id"]
        response = _set_status(client, order_id, "shipped")
        assert response.status_code == 400

    def test_received_requires_recipient(self, client):
        order_id = _place_order(client)["id"]
        _advance_to_in_transit(client, order_id)
        assert _set_status(client, order_id, "received", actor="driver").status_code == 400

    def test_missing_order(self, client):
        assert _set_status(client, "nope", "confirmed").status_code == 404

    def test_concurrent_change_is_a_conflict(self, client):
        order_id = _place_order(client)["id"]
        conflict = ConcurrentConflict(order_id, "pending", "cancelled", "confirmed")
        with patch.object(OrderStateMachine, "request_transition", side_effect=conflict):
            response = _set_status(client, order_id, "confirmed")

        assert response.status_code == 409
        assert response.json()["detail"]["current_status"] == "pending"


class TestDeliveryEndpoints:
    def test_assign_agent_and_list_agent_orders(self, client):
        order_id = _place_order(client)["id"]
        response = client.put(f"/orders/{order_id}/delivery-agent", json={"delivery_agent_id": "drv-1"})
        assert response.status_code == 200
        assert response.json()["delivery_agent_id"] == "drv-1"

        orders = client.get("/orders", params={"delivery_agent_id": "drv-1"}).json()
        assert [o["id"] for o in orders] == [order_id]

    def test_destination_is_write_once(self, client):
        order_id = _place_order(client, delivery_lat=None, delivery_lng=None, shipping_address=None)["id"]
        response = client.put(f"/orders/{order_id}/destination", json={"lat": 24.7, "lng": 46.6})
        assert response.status_code == 200
        response = client.put(f"/orders/{order_id}/destination", json={"lat": 21.5, "lng": 39.2})
        assert response.status_code == 400

    def test_route_estimate_from_given_position(self, client):
        order_id = _place_order(client)["id"]
        response = client.get(f"/orders/{order_id}/route", params={"lat": 24.70, "lng": 46.67})
        assert response.status_code == 200
        data = response.json()
        assert data["distance_meters"] > 0
        assert data["duration_seconds"] > 0
        assert data["degraded"] is False

    def test_route_estimate_needs_a_position(self, client):
        order_id = _place_order(client)["id"]
        assert client.get(f"/orders/{order_id}/route").status_code == 400


class TestNotificationEndpoints:
    def test_mark_read_and_delete(self, client):
        _place_order(client)
        notification = client.get("/notifications", params={"recipient_id": "cust-api-001"}).json()["notifications"][0]

        response = client.put(f"/notifications/{notification['id']}/read")
        assert response.status_code == 200
        assert response.json()["read"] is True
        listing = client.get("/notifications", params={"recipient_id": "cust-api-001"}).json()
        assert listing["unread_count"] == 0

        assert client.delete(f"/notifications/{notification['id']}").status_code == 200
        listing = client.get("/notifications", params={"recipient_id": "cust-api-001"}).json()
        assert listing["notifications"] == []

    def test_missing_notification(self, client):
        assert client.put("/notifications/missing/read").status_code == 404


class TestDiscountEndpoints:
    def test_active_discount_applies_at_checkout(self, client):
        now = datetime.now(UTC)
        response = client.post(
            "/discounts",
            json={
                "product_id": "prod-001",
                "discount_percentage": 25,
                "start_date": (now - timedelta(days=1)).isoformat(),
                "end_date": (now + timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 201

        active = client.get("/discounts/prod-001/active")
        assert active.status_code == 200
        assert active.json()["discount_percentage"] == 25

        order = _place_order(client)
        assert order["discount_total"] == 20.0
        assert order["total"] == 70.0
        assert order["items"][0]["discount_percentage"] == 25

    def test_no_active_discount(self, client):
        assert client.get("/discounts/prod-404/active").status_code == 404

    def test_inverted_window_rejected(self, client):
        now = datetime.now(UTC)
        response = client.post(
            "/discounts",
            json={
                "product_id": "prod-001",
                "discount_percentage": 10,
                "start_date": now.isoformat(),
                "end_date": (now - timedelta(days=1)).isoformat(),
            },
        )
        assert response.status_code == 400
