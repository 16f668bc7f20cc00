"""OSRM routing adapter: HTTP client for an OSRM ``route`` service.

The blocking ``requests`` call runs in a worker thread so the event loop
stays free while the engine answers.
"""

import asyncio

import requests
import structlog

from tracking.geo import Coordinate
from tracking.routing.port import Route, RouteError, RoutingPort

logger = structlog.get_logger(__name__)


class OSRMRouter(RoutingPort):
    """Routing adapter backed by the OSRM HTTP API (driving profile)."""

    DEFAULT_BASE_URL = "https://router.project-osrm.org"

    def __init__(self, base_url: str = DEFAULT_BASE_URL, request_timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        alternatives: bool = True,
    ) -> list[Route]:
        return await asyncio.to_thread(self._fetch, origin, destination, alternatives)

    def _fetch(self, origin: Coordinate, destination: Coordinate, alternatives: bool) -> list[Route]:
        # OSRM expects lng,lat pairs
        url = f"{self.base_url}/route/v1/driving/{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        params = {
            "alternatives": "true" if alternatives else "false",
            "overview": "full",
            "geometries": "geojson",
        }
        try:
            resp = requests.get(url, params=params, timeout=self.request_timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("OSRM request failed", error=str(exc))
            raise RouteError(f"Routing request failed: {exc}") from exc

        if data.get("code") != "Ok" or not data.get("routes"):
            raise RouteError(f"No route found: {data.get('code', 'unknown')}")

        return [self._to_route(item) for item in data["routes"]]

    @staticmethod
    def _to_route(item: dict) -> Route:
        coordinates = item.get("geometry", {}).get("coordinates", [])
        return Route(
            polyline=[Coordinate(lat=float(lat), lng=float(lng)) for lng, lat in coordinates],
            distance_meters=float(item.get("distance", 0.0)),
            duration_seconds=float(item.get("duration", 0.0)),
        )
