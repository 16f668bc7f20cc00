"""Fake geocoder: resolves from an in-memory address book."""

import asyncio

from tracking.geo import Coordinate
from tracking.geocoding.port import GeocodeError, GeocodingPort


class FakeGeocoder(GeocodingPort):
    """Geocoder with a fixed answer for unknown addresses unless told to fail."""

    DEFAULT_LOCATION = Coordinate(lat=24.7136, lng=46.6753)

    def __init__(self):
        self.addresses: dict[str, Coordinate] = {}
        self.should_succeed = True
        self.failure_reason = "Address not found"
        self.delay = 0.0
        self.calls: list[str] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Address not found", delay: float = 0.0):
        """Configure the fake geocoder behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay = delay

    def register(self, address: str, location: Coordinate):
        self.addresses[address.strip().lower()] = location

    async def geocode(self, address: str) -> Coordinate:
        self.calls.append(address)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.should_succeed:
            raise GeocodeError(address, self.failure_reason)
        return self.addresses.get(address.strip().lower(), self.DEFAULT_LOCATION)
