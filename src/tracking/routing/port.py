"""Route-planning port: abstract interface for routing engines.

Adapters return every candidate route the engine offers; choosing between
them is the planner's job.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from tracking.geo import Coordinate


class RouteError(Exception):
    """The routing engine failed, timed out or found no route."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Route:
    """One candidate route between two points."""

    polyline: list[Coordinate] = field(default_factory=list)
    distance_meters: float = 0.0
    duration_seconds: float = 0.0


class RoutingPort(ABC):
    """Abstract interface for routing adapters."""

    @abstractmethod
    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        alternatives: bool = True,
    ) -> list[Route]:
        """Compute candidate routes from origin to destination.

        Returns:
            list of Route, possibly more than one when alternatives are requested

        Raises:
            RouteError when the engine fails or has no route
        """
        ...
