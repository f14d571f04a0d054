"""Shared data structures for trip planning.

Seeds, routes, days and plans are plain dataclasses so the planner, the
day builder and the HTTP layer can share one definition without importing
each other.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

WALK_PROFILE = "foot"
BIKE_PROFILE = "bike"


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def is_valid(self) -> bool:
        return (
            isinstance(self.lat, (int, float)) and isinstance(self.lon, (int, float))
            and math.isfinite(self.lat) and math.isfinite(self.lon)
            and -90 <= self.lat <= 90 and -180 <= self.lon <= 180
        )


@dataclass(frozen=True)
class NamedPoint:
    """A coordinate with a display name, e.g. "Eiffel Tower"."""

    name: str
    lat: float
    lon: float

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)

    def is_valid(self) -> bool:
        return self.coordinate.is_valid()

    def moved_to(self, coord: Coordinate, name: Optional[str] = None) -> "NamedPoint":
        return NamedPoint(name=self.name if name is None else name, lat=coord.lat, lon=coord.lon)

    def to_dict(self) -> dict:
        return {"name": self.name, "lat": self.lat, "lon": self.lon}


@dataclass(frozen=True)
class HikeSeed:
    """Walking skeleton entry: loop around ``target``."""

    day: int
    target: Optional[NamedPoint]


@dataclass(frozen=True)
class BikeSeed:
    """Biking skeleton entry: ride from ``origin`` to ``destination``."""

    day: int
    origin: Optional[NamedPoint]
    destination: Optional[NamedPoint]


DaySeed = Union[HikeSeed, BikeSeed]


@dataclass
class RouteResult:
    distance: float  # meters
    duration: float  # seconds
    geometry: List[Coordinate]
    profile: str = ""

    @property
    def distance_km(self) -> float:
        return round(self.distance / 1000, 2)

    @property
    def duration_min(self) -> float:
        return round(self.duration / 60, 1)


@dataclass
class Day:
    """One routed day of a plan."""

    index: int
    waypoints: List[NamedPoint]
    mode: str  # WALK_PROFILE or BIKE_PROFILE
    distance_km: float
    duration_min: float
    geometry: List[Coordinate] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "day": self.index,
            "waypoints": [wp.to_dict() for wp in self.waypoints],
            "profile": self.mode,
            "distanceKm": self.distance_km,
            "durationMin": self.duration_min,
            "geometry": {
                "type": "LineString",
                "coordinates": [[c.lon, c.lat] for c in self.geometry],
            },
        }


@dataclass
class Plan:
    trip_type: str  # "hike" or "bike"
    country: str
    days: List[Day]

    @property
    def total_km(self) -> float:
        return round(sum(d.distance_km for d in self.days), 2)


@dataclass
class Constraints:
    """Distance limits and retry budgets for one planning call."""

    walking_min_km: float = 5.0
    walking_max_km: float = 15.0
    bike_max_per_day_km: float = 60.0
    bike_total_max_km: float = 120.0
    max_loop_tries: int = 10
    max_replans: int = 4
    day_count: int = 1

    def __post_init__(self):
        self.day_count = clamp_day_count(self.day_count)

    def bike_limit_km(self) -> float:
        """Effective cap on the summed biking distance."""
        return self.bike_total_max_km if self.day_count > 1 else self.bike_max_per_day_km


def clamp_day_count(value: Any) -> int:
    """Coerce ``value`` to an int in [1, 2]; garbage becomes 1."""
    try:
        days = int(value)
    except (TypeError, ValueError):
        days = 1
    return max(1, min(2, days))
