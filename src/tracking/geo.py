"""Geospatial helpers: great-circle distance and bounding boxes.

Pure functions only. Distances are in metres.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

EARTH_RADIUS_M = 6_371_008.8


@dataclass(frozen=True)
class Coordinate:
    """A WGS-84 latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def as_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class BoundingBox:
    south: float
    west: float
    north: float
    east: float


def validate_coordinate(lat, lng) -> bool:
    """True when both values are finite numbers inside the WGS-84 ranges."""
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def coordinate(lat, lng) -> Coordinate:
    """Build a Coordinate, rejecting out-of-range or non-numeric values."""
    if not validate_coordinate(lat, lng):
        raise ValueError(f"Invalid coordinate: lat={lat!r}, lng={lng!r}")
    return Coordinate(lat=float(lat), lng=float(lng))


def distance(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two points, in metres."""
    if a == b:
        return 0.0
    lat1, lng1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lng2 = math.radians(b.lat), math.radians(b.lng)
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # Clamp against rounding drift for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def bounding_box(points: Iterable[Coordinate]) -> BoundingBox | None:
    """Smallest box containing every point, or None for no points."""
    points = list(points)
    if not points:
        return None
    return BoundingBox(
        south=min(p.lat for p in points),
        west=min(p.lng for p in points),
        north=max(p.lat for p in points),
        east=max(p.lng for p in points),
    )


def union(a: BoundingBox | None, b: BoundingBox | None) -> BoundingBox | None:
    """Smallest box containing both boxes. Either side may be None."""
    if a is None:
        return b
    if b is None:
        return a
    return BoundingBox(
        south=min(a.south, b.south),
        west=min(a.west, b.west),
        north=max(a.north, b.north),
        east=max(a.east, b.east),
    )


def contains(box: BoundingBox, point: Coordinate) -> bool:
    return box.south <= point.lat <= box.north and box.west <= point.lng <= box.east
