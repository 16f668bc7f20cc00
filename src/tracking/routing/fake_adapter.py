"""Fake routing adapter: deterministic routes for testing and development.

Without configured routes it answers with a straight two-point polyline,
great-circle distance and a duration at a fixed urban speed.
"""

import asyncio

from tracking.geo import Coordinate, distance
from tracking.routing.port import Route, RouteError, RoutingPort

URBAN_SPEED_MPS = 8.0


class FakeRouter(RoutingPort):
    """Router that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Routing engine unavailable"
        self.delay = 0.0
        self.routes: list[Route] | None = None
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Routing engine unavailable",
        delay: float = 0.0,
        routes: list[Route] | None = None,
    ):
        """Configure the fake router behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay = delay
        self.routes = routes

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        alternatives: bool = True,
    ) -> list[Route]:
        self.calls.append({"origin": origin, "destination": destination, "alternatives": alternatives})
        if self.delay:
            await asyncio.sleep(self.delay)

        if not self.should_succeed:
            raise RouteError(self.failure_reason)

        if self.routes is not None:
            return list(self.routes) if alternatives else list(self.routes[:1])

        meters = distance(origin, destination)
        return [
            Route(
                polyline=[origin, destination],
                distance_meters=meters,
                duration_seconds=meters / URBAN_SPEED_MPS,
            )
        ]

    def reset(self):
        self.calls.clear()
        self.configure()
