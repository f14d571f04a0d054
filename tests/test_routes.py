"""
Tests for the Flask routes, with the planner, OSRM and geocoder faked out.
"""

import random

import pytest

from main import create_app
from triproute.api.errors import DeadlineExceededError, GeocodingError
from triproute.api.models import BikeSeed, HikeSeed, NamedPoint
from triproute.api.routing import RoutingClient
from triproute.api.services.day_builder import DayBuilder
from triproute.api.services.itinerary_service import ItineraryService
from triproute.api.services.map_service import MapService

from conftest import FakeOsrmSession, ScriptedSeeds, route_ok

EIFFEL = NamedPoint("Eiffel Tower", 48.8584, 2.2945)
LYON = NamedPoint("Lyon", 45.7640, 4.8357)
VIENNE = NamedPoint("Vienne", 45.5256, 4.8744)


def _client(seeds=None, session=None, planner=None, geocoder=None):
    session = session or FakeOsrmSession()
    routing = RoutingClient(base_url="http://osrm.test", session=session)
    if planner is None:
        builder = DayBuilder(routing, walk_profiles=("foot",), bike_profiles=("bike",),
                             rng=random.Random(1))
        planner = ItineraryService(seeds or ScriptedSeeds([]), builder)
    app = create_app(
        planner=planner,
        maps=MapService(routing),
        geocoder=geocoder or (lambda lat, lng: "Paris, France"),
    )
    app.config["TESTING"] = True
    return app.test_client()


class TestPlanRoute:
    """Tests for POST /api/llm/plan."""

    def test_walking_plan(self):
        seeds = ScriptedSeeds([HikeSeed(1, EIFFEL)])
        response = _client(seeds).post("/api/llm/plan", json={"country": "France", "tripType": "hiking"})

        assert response.status_code == 200
        days = response.get_json()["days"]
        assert len(days) == 1
        assert days[0]["profile"] == "foot"
        assert days[0]["distanceKm"] == 10.0
        assert days[0]["waypoints"][1]["name"] == "Eiffel Tower"
        assert days[0]["geometry"]["type"] == "LineString"

    def test_missing_country_is_400_without_ai_call(self):
        seeds = ScriptedSeeds([HikeSeed(1, EIFFEL)])
        response = _client(seeds).post("/api/llm/plan", json={"tripType": "hike"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_input"
        assert seeds.calls == []

    def test_non_object_body_is_400(self):
        response = _client().post("/api/llm/plan", json=["France", "hike"])
        assert response.status_code == 400

    def test_bike_limit_violation_is_500(self):
        seeds = ScriptedSeeds([BikeSeed(1, LYON, VIENNE)])
        session = FakeOsrmSession(route=lambda p, cs: route_ok(75_000))
        response = _client(seeds, session).post("/api/llm/plan", json={
            "country": "France", "tripType": "biking", "limits": {"maxDays": 1},
        })

        assert response.status_code == 500
        assert response.get_json() == {"error": "bike_distance_limits_exceeded"}
        assert len(seeds.calls) == 4

    @pytest.mark.parametrize("limits, expected", [
        (None, 2),
        ({"maxDays": 1}, 1),
        ({"maxDays": 5}, 2),
        ({"maxDays": 0}, 1),
    ])
    def test_max_days_maps_to_day_count(self, limits, expected):
        seeds = ScriptedSeeds([HikeSeed(1, EIFFEL)])
        body = {"country": "France", "tripType": "hike"}
        if limits is not None:
            body["limits"] = limits
        _client(seeds).post("/api/llm/plan", json=body)
        assert seeds.calls[0]["day_count"] == expected

    def test_bike_limits_reach_seed_request(self):
        seeds = ScriptedSeeds([BikeSeed(1, LYON, VIENNE)])
        _client(seeds).post("/api/llm/plan", json={
            "country": "France", "tripType": "bike",
            "limits": {"maxDays": 2, "maxPerDayKm": 50, "totalMax": 90},
        })
        assert seeds.calls[0]["max_per_day_km"] == 50.0
        assert seeds.calls[0]["total_max_km"] == 90.0

    @pytest.mark.parametrize("seconds", ["soon", -1, 0])
    def test_bad_deadline_is_400(self, seconds):
        response = _client().post("/api/llm/plan", json={
            "country": "France", "tripType": "hike", "deadlineSeconds": seconds,
        })
        assert response.status_code == 400

    def test_bad_limits_is_400(self):
        response = _client().post("/api/llm/plan", json={
            "country": "France", "tripType": "hike", "limits": {"min": "five"},
        })
        assert response.status_code == 400

    def test_deadline_exceeded_is_504(self):
        class SlowPlanner:
            def plan_trip(self, *args, **kwargs):
                raise DeadlineExceededError()

        response = _client(planner=SlowPlanner()).post(
            "/api/llm/plan", json={"country": "France", "tripType": "hike"}
        )
        assert response.status_code == 504
        assert response.get_json() == {"error": "deadline_exceeded"}


class TestSnapRoute:
    """Tests for POST /api/routes/osrm."""

    def test_snapped_route(self):
        response = _client().post("/api/routes/osrm", json={
            "profile": "foot",
            "waypoints": [{"lat": 48.8606, "lng": 2.3376}, {"lat": 48.8530, "lng": 2.3499}],
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body["distanceKm"] == 10.0
        assert body["geometry"][0] == [48.0, 2.0]

    def test_single_waypoint_soft_fails(self):
        session = FakeOsrmSession()
        response = _client(session=session).post("/api/routes/osrm", json={
            "waypoints": [{"lat": 48.8606, "lng": 2.3376}],
        })
        assert response.status_code == 200
        assert response.get_json() == {"distanceKm": None, "geometry": []}
        assert session.calls == []

    @pytest.mark.parametrize("loop, expected_points", [(True, 3), (False, 2), ("false", 2), ("true", 2), (1, 2)])
    def test_only_boolean_true_closes_the_loop(self, loop, expected_points):
        session = FakeOsrmSession()
        _client(session=session).post("/api/routes/osrm", json={
            "waypoints": [{"lat": 48.8606, "lng": 2.3376}, {"lat": 48.8530, "lng": 2.3499}],
            "loop": loop,
        })
        route_call = [c for c in session.calls if c["service"] == "route"][0]
        assert len(route_call["coords"]) == expected_points

    def test_profile_defaults_to_foot(self):
        session = FakeOsrmSession()
        _client(session=session).post("/api/routes/osrm", json={
            "waypoints": [{"lat": 48.8606, "lng": 2.3376}, {"lat": 48.8530, "lng": 2.3499}],
        })
        assert {c["profile"] for c in session.calls} == {"foot"}


class TestGeocodeRoute:
    """Tests for GET /api/geocode/reverse."""

    def test_name_returned(self):
        response = _client().get("/api/geocode/reverse?lat=48.85&lng=2.35")
        assert response.status_code == 200
        assert response.get_json() == {"name": "Paris, France"}

    def test_nothing_found_is_empty_name(self):
        response = _client(geocoder=lambda lat, lng: None).get("/api/geocode/reverse?lat=0&lng=0")
        assert response.get_json() == {"name": ""}

    @pytest.mark.parametrize("query", ["", "?lat=48.85", "?lat=abc&lng=2", "?lat=99&lng=2"])
    def test_bad_coordinates_are_400(self, query):
        response = _client().get(f"/api/geocode/reverse{query}")
        assert response.status_code == 400
        assert response.get_json() == {"error": "lat,lng required"}

    def test_geocoder_failure_is_502(self):
        def broken(lat, lng):
            raise GeocodingError("quota exceeded")

        response = _client(geocoder=broken).get("/api/geocode/reverse?lat=48.85&lng=2.35")
        assert response.status_code == 502
        assert response.get_json() == {"error": "geocoder failed"}


class TestAppEndpoints:
    """Tests for health, debug and unknown routes."""

    def test_health(self):
        response = _client().get("/api/health")
        assert response.get_json() == {"status": "ok", "service": "triproute"}

    def test_debug_lists_endpoints(self):
        body = _client().get("/debug").get_json()
        assert body["status"] == "ok"
        assert body["endpoints"]["plan"] == "/api/llm/plan"

    def test_unknown_route_is_json_404(self):
        response = _client().get("/api/nope")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}
