import asyncio

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from tracking.channel import get_channel, reset_channels
from tracking.config import get_settings
from tracking.geocoding import get_geocoder, reset_geocoder
from tracking.notification.dispatch import reset_dispatcher
from tracking.order.checkout import Checkout
from tracking.routing import get_router, reset_router
from tracking.store import get_store, reset_store
from tracking.store.port import ORDERS


@pytest.fixture(scope="session")
def tracking_bed():
    from tracking.domain import tracking

    bed = DomainFixture(tracking)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(tracking_bed):
    with tracking_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()


def _reset_singletons():
    reset_store()
    reset_router()
    reset_geocoder()
    reset_channels()
    reset_dispatcher()
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _fresh_adapters():
    """Every test starts with fresh adapter singletons and settings."""
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture()
def store():
    return get_store()


@pytest.fixture()
def push():
    return get_channel()


@pytest.fixture()
def router():
    return get_router()


@pytest.fixture()
def geocoder():
    return get_geocoder()


@pytest.fixture()
def order_payload():
    """Checkout arguments for a cash-on-delivery order with a known delivery point."""
    return {
        "customer_id": "cust-001",
        "items": [
            {"product_id": "prod-001", "title": "Dates 1kg", "unit_price": 40.0, "quantity": 2},
            {"product_id": "prod-002", "title": "Arabic Coffee", "unit_price": 25.0, "quantity": 1},
        ],
        "shipping_address": "King Fahd Rd, Riyadh",
        "shipping_phone": "+966500000000",
        "shipping_zone": "north",
        "shipping_cost": 15.0,
        "delivery_lat": 24.7136,
        "delivery_lng": 46.6753,
        "discounts": [],
    }


@pytest.fixture()
def placed_order(store, order_payload):
    """A pending order already stored; returns its document."""

    async def _place():
        result = await Checkout(store).place_order(**order_payload)
        return await store.get(ORDERS, str(result.order.id))

    return asyncio.run(_place())
