# triproute/api/routing.py
"""OSRM client with ordered profile fallback.

Every call takes a chain of profiles (e.g. ``("foot", "walking", "foot")``)
and tries them in order. Each try is recorded as a ``ProfileAttempt``; the
first successful one wins and a ``RoutingError`` is raised only when the
whole chain failed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests

from triproute.api.config import get_routing_config
from triproute.api.deadline import NO_DEADLINE, Deadline
from triproute.api.errors import InvalidInputError, RoutingError
from triproute.api.models import Coordinate, RouteResult

logger = logging.getLogger(__name__)

_client: Optional["RoutingClient"] = None


@dataclass
class ProfileAttempt:
    """Outcome of one call against one profile."""

    profile: str
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


class RoutingClient:
    """Thin wrapper around the OSRM ``nearest`` and ``route`` services."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        nearest_timeout: Optional[float] = None,
        route_timeout: Optional[float] = None,
    ):
        cfg = get_routing_config()
        self.base_url = (base_url or cfg["base_url"]).rstrip("/")
        self.session = session or requests.Session()
        self.nearest_timeout = nearest_timeout or cfg["nearest_timeout"]
        self.route_timeout = route_timeout or cfg["route_timeout"]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def nearest(self, profiles: Sequence[str], coord: Coordinate,
                deadline: Deadline = NO_DEADLINE) -> Coordinate:
        """Snap ``coord`` to the road network using the first profile that works."""
        return self._first_ok(
            profiles,
            lambda profile: self._nearest_once(
                profile, coord, deadline.timeout_for(self.nearest_timeout)
            ),
            what="nearest",
        )

    def route(self, profiles: Sequence[str], coords: Sequence[Coordinate],
              deadline: Deadline = NO_DEADLINE) -> RouteResult:
        """Route through ``coords`` in order using the first profile that works."""
        if len(coords) < 2:
            raise InvalidInputError("A route needs at least two coordinates")
        return self._first_ok(
            profiles,
            lambda profile: self._route_once(
                profile, coords, deadline.timeout_for(self.route_timeout)
            ),
            what="route",
        )

    # ------------------------------------------------------------------
    # Fallback chain
    # ------------------------------------------------------------------

    def _first_ok(self, profiles: Sequence[str],
                  attempt: Callable[[str], ProfileAttempt], what: str):
        attempts: List[ProfileAttempt] = []
        for profile in profiles:
            result = attempt(profile)
            attempts.append(result)
            if result.ok:
                if len(attempts) > 1:
                    logger.info(f"OSRM {what} succeeded with fallback profile '{profile}'")
                return result.value
            logger.debug(f"OSRM {what} failed for profile '{profile}': {result.error}")

        last_error = attempts[-1].error if attempts else None
        tried = ", ".join(a.profile for a in attempts) or "none"
        raise RoutingError(
            f"OSRM {what} failed for every profile ({tried}): {last_error}",
            attempts=attempts,
            last_error=last_error,
        )

    # ------------------------------------------------------------------
    # Single-profile calls
    # ------------------------------------------------------------------

    def _nearest_once(self, profile: str, coord: Coordinate, timeout: float) -> ProfileAttempt:
        url = f"{self.base_url}/nearest/v1/{profile}/{coord.lon},{coord.lat}"
        try:
            data = self._get_json(url, {"number": 1}, timeout)
        except (requests.RequestException, ValueError) as exc:
            return ProfileAttempt(profile, ok=False, error=exc)

        waypoints = data.get("waypoints") or []
        if data.get("code") != "Ok" or not waypoints:
            return ProfileAttempt(
                profile, ok=False,
                error=RoutingError(f"OSRM nearest failed ({profile}): code={data.get('code')}"),
            )

        try:
            lon, lat = waypoints[0]["location"][:2]
        except (KeyError, TypeError, ValueError) as exc:
            return ProfileAttempt(profile, ok=False, error=exc)
        return ProfileAttempt(profile, ok=True, value=Coordinate(lat=float(lat), lon=float(lon)))

    def _route_once(self, profile: str, coords: Sequence[Coordinate], timeout: float) -> ProfileAttempt:
        coord_str = ";".join(f"{c.lon},{c.lat}" for c in coords)
        url = f"{self.base_url}/route/v1/{profile}/{coord_str}"
        params = {"geometries": "geojson", "overview": "full", "steps": "false"}
        try:
            data = self._get_json(url, params, timeout)
        except (requests.RequestException, ValueError) as exc:
            return ProfileAttempt(profile, ok=False, error=exc)

        routes = data.get("routes") or []
        if data.get("code") != "Ok" or not routes:
            return ProfileAttempt(
                profile, ok=False,
                error=RoutingError(f"OSRM route failed ({profile}): code={data.get('code')}"),
            )

        route = routes[0]
        try:
            line = (route.get("geometry") or {}).get("coordinates") or []
            result = RouteResult(
                distance=float(route.get("distance", 0)),
                duration=float(route.get("duration", 0)),
                geometry=[Coordinate(lat=float(pt[1]), lon=float(pt[0])) for pt in line],
                profile=profile,
            )
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            return ProfileAttempt(profile, ok=False, error=exc)
        return ProfileAttempt(profile, ok=True, value=result)

    def _get_json(self, url: str, params: Dict[str, Any], timeout: float) -> Dict[str, Any]:
        logger.debug(f"GET {url} timeout={timeout:.1f}s")
        response = self.session.get(url, params=params, timeout=timeout)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("OSRM returned a non-object body")
        return data


def get_routing_client() -> RoutingClient:
    """Return a cached RoutingClient built from environment configuration."""
    global _client
    if _client is None:
        _client = RoutingClient()
        logger.info(f"Initialized OSRM client for {_client.base_url}")
    return _client
