# triproute/api/geomath.py
"""Great-circle helpers used for loop candidates and loop closing."""

from __future__ import annotations

import math

from triproute.api.errors import InvalidInputError
from triproute.api.models import Coordinate

EARTH_RADIUS_M = 6_371_000.0


def is_valid_coordinate(lat, lon) -> bool:
    """True when both values are finite numbers inside the lat/lon ranges."""
    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError):
        return False
    return (
        math.isfinite(lat) and math.isfinite(lon)
        and -90 <= lat <= 90 and -180 <= lon <= 180
    )


def _require_finite(*values: float) -> None:
    for value in values:
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidInputError(f"Expected a finite number, got {value!r}")


def destination_point(origin: Coordinate, distance_meters: float,
                      bearing_degrees: float) -> Coordinate:
    """Point reached from ``origin`` after ``distance_meters`` on ``bearing_degrees``.

    Longitude is normalised into (-180, 180].
    """
    _require_finite(origin.lat, origin.lon, distance_meters, bearing_degrees)

    delta = distance_meters / EARTH_RADIUS_M
    theta = math.radians(bearing_degrees)
    phi1 = math.radians(origin.lat)
    lambda1 = math.radians(origin.lon)

    sin_phi2 = (
        math.sin(phi1) * math.cos(delta)
        + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))
    y = math.sin(theta) * math.sin(delta) * math.cos(phi1)
    x = math.cos(delta) - math.sin(phi1) * sin_phi2
    lambda2 = lambda1 + math.atan2(y, x)

    lon = (math.degrees(lambda2) + 540) % 360 - 180
    if lon == -180:
        lon = 180.0
    return Coordinate(lat=math.degrees(phi2), lon=lon)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two points in kilometres."""
    _require_finite(a.lat, a.lon, b.lat, b.lon)

    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lon - a.lon)
    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * (EARTH_RADIUS_M / 1000) * math.asin(math.sqrt(min(1.0, h)))
