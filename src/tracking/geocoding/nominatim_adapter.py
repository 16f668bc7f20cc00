"""Nominatim geocoding adapter (OpenStreetMap search API)."""

import asyncio

import requests
import structlog

from tracking.geo import Coordinate, coordinate
from tracking.geocoding.port import GeocodeError, GeocodingPort

logger = structlog.get_logger(__name__)


class NominatimGeocoder(GeocodingPort):
    DEFAULT_BASE_URL = "https://nominatim.openstreetmap.org"

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = "shoptrack/0.1",
        request_timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.request_timeout = request_timeout

    async def geocode(self, address: str) -> Coordinate:
        return await asyncio.to_thread(self._search, address)

    def _search(self, address: str):
        try:
            resp = requests.get(
                f"{self.base_url}/search",
                params={"q": address, "format": "json", "limit": 1},
                headers={"User-Agent": self.user_agent},
                timeout=self.request_timeout,
            )
            resp.raise_for_status()
            results = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Nominatim request failed", error=str(exc))
            raise GeocodeError(address, str(exc)) from exc

        if not results:
            raise GeocodeError(address, "no match")

        try:
            return coordinate(results[0]["lat"], results[0]["lon"])
        except (KeyError, ValueError) as exc:
            raise GeocodeError(address, f"malformed result: {exc}") from exc
