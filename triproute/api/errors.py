# triproute/api/errors.py
"""Exception hierarchy for the trip planner.

Every error raised by the planning core derives from ``TripPlannerError`` so
the HTTP layer can map failures to responses in one place.
"""

from __future__ import annotations

from typing import Any, List, Optional


class TripPlannerError(Exception):
    """Base class for all planner errors."""


class InvalidInputError(TripPlannerError, ValueError):
    """Missing or malformed input. Never retried, never hits the network."""


class RoutingError(TripPlannerError):
    """Every profile in a fallback chain failed."""

    def __init__(self, message: str, attempts: Optional[List[Any]] = None,
                 last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts or []
        self.last_error = last_error


class AiFormatError(TripPlannerError):
    """The AI seed response was not the JSON shape we asked for."""


class AiServiceError(TripPlannerError):
    """The AI completion service could not be reached or refused the call."""


class WalkingLoopError(TripPlannerError):
    """No loop attempt produced a usable route."""

    def __init__(self, message: str, attempts: Optional[List[Any]] = None):
        super().__init__(message)
        self.attempts = attempts or []


class ConstraintViolationError(TripPlannerError):
    """A biking plan broke the per-day or total distance cap."""

    def __init__(self, message: str, total_km: float = 0.0, limit_km: float = 0.0):
        super().__init__(message)
        self.total_km = total_km
        self.limit_km = limit_km


class PlanningError(TripPlannerError):
    """Planning gave up. ``reason`` is the machine-readable error code."""

    def __init__(self, reason: str, attempts: Optional[List[Any]] = None):
        super().__init__(reason)
        self.reason = reason
        self.attempts = attempts or []


class DeadlineExceededError(PlanningError):
    """The caller's overall deadline ran out before planning finished."""

    def __init__(self, attempts: Optional[List[Any]] = None):
        super().__init__("deadline_exceeded", attempts)


class GeocodingError(TripPlannerError):
    """Reverse geocoding failed."""
