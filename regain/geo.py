"""
Geographic helpers for proximity search.

Coordinates follow GeoJSON ordering: ``(longitude, latitude)`` in degrees.
"""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_M = 6_371_008.8


def validate_point(longitude: float, latitude: float) -> None:
    if not -180.0 <= longitude <= 180.0:
        raise ValueError("longitude must be between -180 and 180")
    if not -90.0 <= latitude <= 90.0:
        raise ValueError("latitude must be between -90 and 90")


def haversine_m(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance between two points in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(
    longitude: float, latitude: float, radius_m: float
) -> tuple[Optional[float], float, Optional[float], float]:
    """
    Return ``(min_lng, min_lat, max_lng, max_lat)`` enclosing a circle.

    The longitude bounds are ``None`` when the circle reaches a pole or
    crosses the antimeridian; callers should then filter on latitude only.
    """
    angular = radius_m / EARTH_RADIUS_M
    d_lat = math.degrees(angular)
    min_lat = max(-90.0, latitude - d_lat)
    max_lat = min(90.0, latitude + d_lat)
    if min_lat <= -90.0 or max_lat >= 90.0:
        return None, min_lat, None, max_lat

    ratio = math.sin(angular) / math.cos(math.radians(latitude))
    if ratio >= 1.0:
        return None, min_lat, None, max_lat
    d_lng = math.degrees(math.asin(ratio))
    min_lng = longitude - d_lng
    max_lng = longitude + d_lng
    if min_lng < -180.0 or max_lng > 180.0:
        return None, min_lat, None, max_lat
    return min_lng, min_lat, max_lng, max_lat
