"""Device location source port and the samples it produces."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime

from tracking.geo import Coordinate


@dataclass(frozen=True)
class LocationSample:
    """One position fix from the driver's device. ``accuracy`` is a radius in metres."""

    lat: float
    lng: float
    accuracy: float | None
    timestamp: datetime

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)


@dataclass(frozen=True)
class LocationUnavailable:
    """Signal delivered to observers when the device source fails."""

    driver_id: str
    reason: str
    retry_in: float


class LocationSourceError(Exception):
    """The device source failed (permission denied, timeout, ...)."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class LocationSource(ABC):
    """Abstract interface for device location sources."""

    @abstractmethod
    def watch(self, driver_id: str) -> AsyncIterator[LocationSample]:
        """Stream samples for a driver until the source pauses or fails.

        Raises:
            LocationSourceError from the iterator when the device fails
        """
        ...
