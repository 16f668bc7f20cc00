"""Geocoding adapter registry and a failure-absorbing lookup helper."""

import asyncio
import os

import structlog

from tracking.geo import Coordinate
from tracking.geocoding.port import GeocodeError, GeocodingPort

logger = structlog.get_logger(__name__)

_geocoder_instance = None


def get_geocoder():
    """Return the configured geocoder (singleton).

    Uses FakeGeocoder by default; GEOCODING_ADAPTER=nominatim selects the
    OpenStreetMap search API (NOMINATIM_BASE_URL overrides the host).
    """
    global _geocoder_instance
    if _geocoder_instance is None:
        adapter = os.environ.get("GEOCODING_ADAPTER", "fake")
        if adapter == "fake":
            from tracking.geocoding.fake_adapter import FakeGeocoder

            _geocoder_instance = FakeGeocoder()
        elif adapter == "nominatim":
            from tracking.geocoding.nominatim_adapter import NominatimGeocoder

            _geocoder_instance = NominatimGeocoder(
                base_url=os.environ.get("NOMINATIM_BASE_URL", NominatimGeocoder.DEFAULT_BASE_URL)
            )
        else:
            raise ValueError(f"Unknown geocoding adapter: {adapter}")
    return _geocoder_instance


def reset_geocoder():
    """Reset the geocoder singleton (useful for testing)."""
    global _geocoder_instance
    _geocoder_instance = None


async def locate(address: str, geocoder: GeocodingPort | None = None, timeout: float | None = None) -> Coordinate | None:
    """Best-effort geocode. Returns None instead of raising."""
    if not address or not address.strip():
        return None
    if geocoder is None:
        geocoder = get_geocoder()
    if timeout is None:
        from tracking.config import get_settings

        timeout = get_settings().geocode_timeout_s

    try:
        return await asyncio.wait_for(geocoder.geocode(address), timeout=timeout)
    except TimeoutError:
        logger.warning("Geocoding timed out", address=address, timeout=timeout)
    except GeocodeError as exc:
        logger.warning("Geocoding failed", address=address, reason=exc.reason)
    return None
