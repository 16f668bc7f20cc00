"""Route planning for active deliveries.

``RoutePlanner`` wraps a routing adapter with a bounded timeout, picks the
fastest alternative and keeps the last good route per order so a moving
driver does not trigger a routing call on every location sample. When the
engine fails the planner falls back to great-circle distance without a
duration, so callers always have a distance to show.
"""

import asyncio
from dataclasses import dataclass, field

import structlog

from tracking.config import get_settings
from tracking.geo import Coordinate, distance
from tracking.routing.port import Route, RouteError, RoutingPort

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RouteEstimate:
    """Distance (and, when known, duration) from a position to a destination."""

    distance_meters: float
    duration_seconds: float | None
    polyline: list[Coordinate] = field(default_factory=list)
    degraded: bool = False


@dataclass(frozen=True)
class _CachedRoute:
    origin: Coordinate
    destination: Coordinate
    route: Route


def select_best_route(routes: list[Route]) -> Route:
    """Fastest route wins; equal durations fall back to the shorter route."""
    if not routes:
        raise RouteError("No candidate routes")
    return min(routes, key=lambda r: (r.duration_seconds, r.distance_meters))


class RoutePlanner:
    def __init__(
        self,
        router: RoutingPort | None = None,
        timeout: float | None = None,
        displacement_threshold: float | None = None,
    ) -> None:
        settings = get_settings()
        if router is None:
            from tracking.routing import get_router

            router = get_router()
        self.router = router
        self.timeout = timeout if timeout is not None else settings.route_timeout_s
        self.displacement_threshold = (
            displacement_threshold if displacement_threshold is not None else settings.route_displacement_threshold_m
        )
        self._cache: dict[str, _CachedRoute] = {}

    async def plan(self, origin: Coordinate, destination: Coordinate) -> Route:
        """Best route between two points, or RouteError within ``timeout`` seconds."""
        try:
            routes = await asyncio.wait_for(
                self.router.route(origin, destination, alternatives=True),
                timeout=self.timeout,
            )
        except TimeoutError:
            raise RouteError(f"Routing timed out after {self.timeout}s") from None
        except RouteError:
            raise
        except Exception as exc:
            raise RouteError(f"Routing failed: {exc}") from exc

        if not routes:
            raise RouteError("Routing engine returned no routes")
        return select_best_route(routes)

    async def route_for_order(self, order_id: str, origin: Coordinate, destination: Coordinate) -> Route:
        """Route for an order, reusing the cached one while the driver stays close to its origin."""
        cached = self._cache.get(order_id)
        if (
            cached is not None
            and cached.destination == destination
            and distance(cached.origin, origin) <= self.displacement_threshold
        ):
            return cached.route

        route = await self.plan(origin, destination)
        self._cache[order_id] = _CachedRoute(origin=origin, destination=destination, route=route)
        logger.debug(
            "Route recomputed",
            order_id=order_id,
            distance_meters=route.distance_meters,
            duration_seconds=route.duration_seconds,
        )
        return route

    async def estimate(
        self,
        origin: Coordinate,
        destination: Coordinate,
        order_id: str | None = None,
    ) -> RouteEstimate:
        """Routed estimate, degrading to straight-line distance on any routing failure."""
        try:
            if order_id is not None:
                route = await self.route_for_order(order_id, origin, destination)
            else:
                route = await self.plan(origin, destination)
        except RouteError as exc:
            logger.warning("Route unavailable, using straight-line distance", order_id=order_id, reason=exc.reason)
            return RouteEstimate(
                distance_meters=distance(origin, destination),
                duration_seconds=None,
                degraded=True,
            )

        return RouteEstimate(
            distance_meters=route.distance_meters,
            duration_seconds=route.duration_seconds,
            polyline=list(route.polyline),
        )

    @staticmethod
    def remaining_distance(current: Coordinate, destination: Coordinate) -> float:
        return distance(current, destination)

    def cached_route(self, order_id: str) -> Route | None:
        cached = self._cache.get(order_id)
        return cached.route if cached else None

    def forget(self, order_id: str) -> None:
        self._cache.pop(order_id, None)
