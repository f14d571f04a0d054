"""
Shared fixtures and fakes.

Nothing here touches the network: OSRM is replaced by ``FakeOsrmSession``
(a stand-in for ``requests.Session``), the AI service by ``FakeOpenAI`` and
the planner's seed source by ``ScriptedSeeds``.
"""

import json
import random
from types import SimpleNamespace
from typing import Callable, List, Optional
from urllib.parse import urlsplit

import pytest
import requests

from triproute.api.models import Coordinate
from triproute.api.routing import RoutingClient
from triproute.api.services.day_builder import DayBuilder


# ============================================================================
# OSRM fakes
# ============================================================================


class FakeResponse:
    def __init__(self, payload, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def nearest_ok(lat: float, lon: float) -> dict:
    return {"code": "Ok", "waypoints": [{"location": [lon, lat]}]}


def route_ok(distance_m: float, duration_s: float = 600.0, coords: Optional[List[List[float]]] = None) -> dict:
    return {
        "code": "Ok",
        "routes": [{
            "distance": distance_m,
            "duration": duration_s,
            "geometry": {"type": "LineString", "coordinates": coords or [[2.0, 48.0], [2.1, 48.1]]},
        }],
    }


class FakeOsrmSession:
    """Routes OSRM-style GET requests to handler callables.

    ``nearest(profile, Coordinate)`` and ``route(profile, [Coordinate])``
    return either a payload dict, a FakeResponse, or raise.
    By default nearest echoes the input point and route reports 10 km.
    """

    def __init__(self, nearest: Optional[Callable] = None, route: Optional[Callable] = None):
        self.nearest = nearest or (lambda profile, c: nearest_ok(c.lat, c.lon))
        self.route = route or (lambda profile, coords: route_ok(10_000))
        self.calls: List[dict] = []

    def get(self, url, params=None, timeout=None):
        path = urlsplit(url).path.strip("/").split("/")
        service, profile, coord_str = path[0], path[2], path[3]
        coords = [
            Coordinate(lat=float(pair.split(",")[1]), lon=float(pair.split(",")[0]))
            for pair in coord_str.split(";")
        ]
        self.calls.append({
            "service": service, "profile": profile, "coords": coords,
            "params": params, "timeout": timeout,
        })
        handler = self.nearest if service == "nearest" else self.route
        result = handler(profile, coords[0] if service == "nearest" else coords)
        return result if isinstance(result, FakeResponse) else FakeResponse(result)

    def count(self, service: str) -> int:
        return sum(1 for c in self.calls if c["service"] == service)


@pytest.fixture
def osrm_session():
    return FakeOsrmSession()


@pytest.fixture
def routing_client(osrm_session):
    return RoutingClient(base_url="http://osrm.test", session=osrm_session,
                         nearest_timeout=15, route_timeout=30)


@pytest.fixture
def day_builder(routing_client):
    return DayBuilder(routing_client, walk_profiles=("foot",), bike_profiles=("bike",),
                      rng=random.Random(42))


# ============================================================================
# AI fakes
# ============================================================================


class FakeCompletions:
    def __init__(self, contents):
        self.contents = list(contents)
        self.calls: List[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.contents.pop(0) if len(self.contents) > 1 else self.contents[0]
        if isinstance(content, Exception):
            raise content
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    """Minimal stand-in exposing ``client.chat.completions.create``."""

    def __init__(self, *contents):
        self.completions = FakeCompletions(contents)
        self.chat = SimpleNamespace(completions=self.completions)


def hike_seed_json(*targets) -> str:
    days = [
        {"day": i, "target": {"name": name, "lat": lat, "lon": lon}}
        for i, (name, lat, lon) in enumerate(targets, start=1)
    ]
    return json.dumps({"tripType": "hike", "country": "France", "days": days})


def bike_seed_json(*legs) -> str:
    days = [
        {
            "day": i,
            "from": {"name": a, "lat": alat, "lon": alon},
            "to": {"name": b, "lat": blat, "lon": blon},
        }
        for i, ((a, alat, alon), (b, blat, blon)) in enumerate(legs, start=1)
    ]
    return json.dumps({"tripType": "bike", "country": "France", "days": days})


class ScriptedSeeds:
    """SeedGenerator stand-in returning pre-built seed lists in order.

    Entries may be exceptions, which are raised instead. The last entry is
    repeated once the script runs out.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[dict] = []

    def request_seed(self, country, trip_type, day_count, max_per_day_km=None,
                     total_max_km=None, deadline=None):
        self.calls.append({
            "country": country, "trip_type": trip_type, "day_count": day_count,
            "max_per_day_km": max_per_day_km, "total_max_km": total_max_km,
        })
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        return response
