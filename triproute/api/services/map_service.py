# triproute/api/services/map_service.py
"""Service layer for map-related operations: snapping user-drawn routes."""

import logging
from typing import Any, Dict, List, Optional

from triproute.api.errors import RoutingError
from triproute.api.geomath import haversine_km, is_valid_coordinate
from triproute.api.models import Coordinate
from triproute.api.routing import RoutingClient, get_routing_client

logger = logging.getLogger(__name__)

# Start and end closer than this already count as a closed loop
LOOP_TOLERANCE_KM = 0.03


def empty_route() -> Dict[str, Any]:
    return {"distanceKm": None, "geometry": []}


class MapService:
    """Snaps waypoint lists to the road network and routes through them.

    Unlike the planner, this never raises: any failure comes back as
    ``{"distanceKm": None, "geometry": []}``.
    """

    def __init__(self, routing: Optional[RoutingClient] = None):
        self._routing = routing

    @property
    def routing(self) -> RoutingClient:
        if self._routing is None:
            self._routing = get_routing_client()
        return self._routing

    def snap_route(self, profile: str, waypoints: List[Dict[str, Any]], loop: bool = False) -> Dict[str, Any]:
        """Snap ``waypoints`` (``[{lat, lng}, ...]``) and route through them.

        Args:
            profile: Routing profile, e.g. "foot" or "bike"
            waypoints: At least two points with ``lat`` and ``lng``
            loop: Close the route back to the first point

        Returns:
            ``{"distanceKm": float | None, "geometry": [[lat, lon], ...]}``
        """
        if not isinstance(waypoints, list) or len(waypoints) < 2:
            return empty_route()

        try:
            points = [self._parse_waypoint(p) for p in waypoints]
            if any(p is None for p in points):
                logger.warning("Snap request contains invalid waypoints")
                return empty_route()

            snapped = [self.snap_point(profile, p) for p in points]
            if loop and haversine_km(snapped[0], snapped[-1]) > LOOP_TOLERANCE_KM:
                snapped.append(snapped[0])

            route = self.routing.route([profile], snapped)
        except RoutingError as exc:
            logger.warning(f"Snap route failed ({profile}): {exc}")
            return empty_route()
        except Exception:
            logger.exception("Unexpected error while snapping route")
            return empty_route()

        return {
            "distanceKm": route.distance / 1000 if route.distance else None,
            "geometry": [[c.lat, c.lon] for c in route.geometry],
        }

    def snap_point(self, profile: str, point: Coordinate) -> Coordinate:
        """Nearest road point, or ``point`` itself when snapping fails."""
        try:
            return self.routing.nearest([profile], point)
        except RoutingError as exc:
            logger.debug(f"Keeping unsnapped point {point}: {exc}")
            return point

    @staticmethod
    def _parse_waypoint(raw: Any) -> Optional[Coordinate]:
        if not isinstance(raw, dict):
            return None
        lat, lng = raw.get("lat"), raw.get("lng", raw.get("lon"))
        if not is_valid_coordinate(lat, lng):
            return None
        return Coordinate(lat=float(lat), lon=float(lng))
