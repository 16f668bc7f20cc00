"""Geocoding port: free-text address to coordinates."""

from abc import ABC, abstractmethod

from tracking.geo import Coordinate


class GeocodeError(Exception):
    """The address could not be resolved, or the geocoder failed."""

    def __init__(self, address: str, reason: str):
        super().__init__(f"Could not geocode '{address}': {reason}")
        self.address = address
        self.reason = reason


class GeocodingPort(ABC):
    """Abstract interface for geocoding adapters."""

    @abstractmethod
    async def geocode(self, address: str) -> Coordinate:
        """Resolve an address.

        Raises:
            GeocodeError when nothing matches or the service fails
        """
        ...
