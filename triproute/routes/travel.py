# triproute/routes/travel.py
"""Planning, snapping and geocoding routes."""

import logging
import math
from typing import Callable, Optional

from flask import Blueprint, jsonify, request

from triproute.api.config import get_planner_config
from triproute.api.deadline import Deadline
from triproute.api.errors import DeadlineExceededError, GeocodingError, InvalidInputError, PlanningError
from triproute.api.geocoding import reverse_geocode
from triproute.api.geomath import is_valid_coordinate
from triproute.api.services.itinerary_service import (
    ItineraryService,
    constraints_from_limits,
    get_itinerary_service,
)
from triproute.api.services.map_service import MapService

logger = logging.getLogger(__name__)


def _deadline(seconds) -> Deadline:
    if seconds is None:
        seconds = get_planner_config()["deadline_seconds"]
    try:
        seconds = float(seconds)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid deadlineSeconds: {seconds!r}") from e
    if not math.isfinite(seconds) or seconds <= 0:
        raise InvalidInputError("deadlineSeconds must be a positive number")
    return Deadline(seconds)


def create_travel_blueprint(planner: Optional[ItineraryService] = None,
                            maps: Optional[MapService] = None,
                            geocoder: Callable[[float, float], Optional[str]] = reverse_geocode):
    """Create and configure the travel blueprint.

    Args:
        planner: Planning service; built from environment config on first use
            when omitted.
        maps: Snapping service; defaults to one on the shared routing client.
        geocoder: ``(lat, lng) -> name`` function for reverse lookups.

    Returns:
        Configured Flask Blueprint
    """
    travel_bp = Blueprint("travel", __name__, url_prefix="/api")
    services = {"planner": planner, "maps": maps or MapService()}

    def _planner() -> ItineraryService:
        if services["planner"] is None:
            services["planner"] = get_itinerary_service()
        return services["planner"]

    @travel_bp.route("/llm/plan", methods=["POST"])
    def api_plan():
        """Plan a walking or biking trip."""
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            data = {}
        country = data.get("country")
        trip_type = data.get("tripType")
        seconds = data.get("deadlineSeconds")

        try:
            constraints = constraints_from_limits(data.get("limits"))
            deadline = _deadline(seconds)
            plan = _planner().plan_trip(
                country, trip_type, constraints.day_count, constraints, deadline
            )
        except InvalidInputError as e:
            return jsonify({"error": "invalid_input", "message": str(e)}), 400
        except DeadlineExceededError:
            logger.error(f"plan error: deadline exceeded for {country} ({trip_type})")
            return jsonify({"error": "deadline_exceeded"}), 504
        except PlanningError as e:
            logger.error(f"plan error: {e.reason} after {len(e.attempts)} attempt(s)")
            return jsonify({"error": e.reason}), 500

        logger.info(f"plan ok: {country} ({trip_type}), {len(plan.days)} day(s), {plan.total_km} km")
        return jsonify({"days": [day.to_dict() for day in plan.days]})

    @travel_bp.route("/routes/osrm", methods=["POST"])
    def api_snap_route():
        """Snap user waypoints to roads and route through them."""
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            data = {}
        result = services["maps"].snap_route(
            data.get("profile") or "foot",
            data.get("waypoints") or [],
            data.get("loop") is True,
        )
        return jsonify(result)

    @travel_bp.route("/geocode/reverse")
    def api_reverse_geocode():
        """Return a display name for a coordinate."""
        lat = request.args.get("lat", type=float)
        lng = request.args.get("lng", type=float)
        if lat is None or lng is None or not is_valid_coordinate(lat, lng):
            return jsonify({"error": "lat,lng required"}), 400

        try:
            name = geocoder(lat, lng)
        except GeocodingError as e:
            logger.error(f"geocode error: {e}")
            return jsonify({"error": "geocoder failed"}), 502
        return jsonify({"name": name or ""})

    @travel_bp.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "service": "triproute"})

    return travel_bp


__all__ = ['create_travel_blueprint']
