# triproute/api/services/day_builder.py
"""Turns seed entries into routed days."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from triproute.api.config import get_profile_chains
from triproute.api.deadline import NO_DEADLINE, Deadline
from triproute.api.errors import InvalidInputError, RoutingError, WalkingLoopError
from triproute.api.geomath import destination_point
from triproute.api.models import BIKE_PROFILE, WALK_PROFILE, Day, NamedPoint
from triproute.api.routing import RoutingClient

logger = logging.getLogger(__name__)

LOOP_RADIUS_MIN_M = 1500
LOOP_RADIUS_MAX_M = 6000


@dataclass
class LoopAttempt:
    """One randomized loop try: either a routed day or the error that stopped it."""

    number: int
    radius_m: float
    bearing_deg: float
    day: Optional[Day] = None
    error: Optional[RoutingError] = None

    @property
    def ok(self) -> bool:
        return self.day is not None


class DayBuilder:
    """Builds walking loops and biking legs on top of a RoutingClient.

    Args:
        routing: Client used for snapping and routing.
        walk_profiles: Fallback chain for walking days.
        bike_profiles: Fallback chain for biking days.
        rng: Random source for loop candidates; pass a seeded
            ``random.Random`` to make loop search reproducible.
    """

    def __init__(
        self,
        routing: RoutingClient,
        walk_profiles: Optional[Sequence[str]] = None,
        bike_profiles: Optional[Sequence[str]] = None,
        rng: Optional[random.Random] = None,
    ):
        chains = get_profile_chains() if walk_profiles is None or bike_profiles is None else {}
        self.routing = routing
        self.walk_profiles = tuple(walk_profiles if walk_profiles is not None else chains["walk"])
        self.bike_profiles = tuple(bike_profiles if bike_profiles is not None else chains["bike"])
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Walking
    # ------------------------------------------------------------------

    def build_walking_loop(self, target: NamedPoint, min_km: float = 5.0, max_km: float = 15.0,
                           max_tries: int = 10, index: int = 1,
                           deadline: Deadline = NO_DEADLINE) -> Day:
        """Search for a start->target->start loop whose length is in [min_km, max_km].

        Returns the first in-band loop. When no try lands in the band, the
        loop closest to the band midpoint is returned instead, so a walking
        day's distance is best effort rather than guaranteed.
        """
        if target is None or not target.is_valid():
            raise InvalidInputError(f"Invalid target coordinates for walking: {target}")

        midpoint = (min_km + max_km) / 2
        attempts: List[LoopAttempt] = []
        best: Optional[LoopAttempt] = None

        for number in range(1, max_tries + 1):
            attempt = self._loop_attempt(number, target, index, deadline)
            attempts.append(attempt)
            if not attempt.ok:
                logger.debug(f"Loop try {number} around '{target.name}' failed: {attempt.error}")
                continue

            distance = attempt.day.distance_km
            if min_km <= distance <= max_km:
                logger.info(f"Loop around '{target.name}' accepted on try {number}: {distance} km")
                return attempt.day
            if best is None or abs(distance - midpoint) < abs(best.day.distance_km - midpoint):
                best = attempt

        if best is not None:
            logger.warning(
                f"No loop around '{target.name}' within {min_km}-{max_km} km after "
                f"{max_tries} tries; using closest ({best.day.distance_km} km)"
            )
            return best.day
        raise WalkingLoopError(
            f"Failed to build a walking loop around '{target.name}' in {max_tries} tries",
            attempts=attempts,
        )

    def _loop_attempt(self, number: int, target: NamedPoint, index: int,
                      deadline: Deadline) -> LoopAttempt:
        radius = LOOP_RADIUS_MIN_M + self.rng.random() * (LOOP_RADIUS_MAX_M - LOOP_RADIUS_MIN_M)
        bearing = self.rng.random() * 360
        attempt = LoopAttempt(number=number, radius_m=radius, bearing_deg=bearing)
        candidate = destination_point(target.coordinate, radius, bearing)

        try:
            start = self.routing.nearest(self.walk_profiles, candidate, deadline)
            snapped_target = self.routing.nearest(self.walk_profiles, target.coordinate, deadline)
            route = self.routing.route(self.walk_profiles, [start, snapped_target, start], deadline)
        except RoutingError as exc:
            attempt.error = exc
            return attempt

        start_name = f"Loop Start near {target.name}"
        loop_start = NamedPoint(name=start_name, lat=start.lat, lon=start.lon)
        attempt.day = Day(
            index=index,
            waypoints=[loop_start, target.moved_to(snapped_target), loop_start],
            mode=WALK_PROFILE,
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            geometry=route.geometry,
        )
        return attempt

    # ------------------------------------------------------------------
    # Biking
    # ------------------------------------------------------------------

    def build_biking_day(self, origin: NamedPoint, destination: NamedPoint, index: int = 1,
                         deadline: Deadline = NO_DEADLINE) -> Day:
        """Direct city-to-city leg between two snapped endpoints."""
        if origin is None or destination is None or not origin.is_valid() or not destination.is_valid():
            raise InvalidInputError("Invalid city coordinates for biking")

        start = self.routing.nearest(self.bike_profiles, origin.coordinate, deadline)
        end = self.routing.nearest(self.bike_profiles, destination.coordinate, deadline)
        route = self.routing.route(self.bike_profiles, [start, end], deadline)

        logger.info(f"Bike leg {origin.name} -> {destination.name}: {route.distance_km} km")
        return Day(
            index=index,
            waypoints=[origin.moved_to(start), destination.moved_to(end)],
            mode=BIKE_PROFILE,
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            geometry=route.geometry,
        )
