# triproute/api/services/itinerary_service.py
"""Service layer for trip planning.

``ItineraryService.plan_trip`` runs a bounded number of attempts. Each attempt
asks the AI for a fresh seed, routes every seeded day and validates the
result; the outcome is recorded as a ``PlanAttempt`` and the loop either
returns the plan, moves on to the next attempt, or gives up with a
``PlanningError``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import partial
from typing import Callable, List, Optional

from triproute.api.config import get_planner_config
from triproute.api.deadline import NO_DEADLINE, Deadline
from triproute.api.errors import (
    AiFormatError,
    AiServiceError,
    ConstraintViolationError,
    DeadlineExceededError,
    InvalidInputError,
    PlanningError,
    RoutingError,
    WalkingLoopError,
)
from triproute.api.llm import SeedGenerator, is_walking_trip
from triproute.api.models import BikeSeed, Constraints, Day, DaySeed, HikeSeed, Plan, clamp_day_count
from triproute.api.routing import get_routing_client
from triproute.api.services.day_builder import DayBuilder

logger = logging.getLogger(__name__)

# Failures that end an attempt but leave room for a replan
_RETRYABLE = (
    (AiFormatError, "ai_format_error"),
    (AiServiceError, "ai_service_error"),
    (WalkingLoopError, "walking_loop_failed"),
    (RoutingError, "routing_failed"),
    (ConstraintViolationError, "bike_distance_limits_exceeded"),
)

# Reasons that are reported as-is when the last attempt ends with them
_TERMINAL_REASONS = ("no_valid_days", "bike_distance_limits_exceeded")


class AttemptStatus(str, Enum):
    ACCEPTED = "accepted"
    RETRY = "retry"
    FAILED = "failed"


@dataclass
class PlanAttempt:
    """Outcome of one seed -> build -> validate cycle."""

    number: int
    status: AttemptStatus
    reason: Optional[str] = None
    days: List[Day] = field(default_factory=list)
    total_km: float = 0.0


class ItineraryService:
    """Plans walking loops and biking legs with bounded replanning."""

    def __init__(self, seeds: SeedGenerator, builder: DayBuilder, day_workers: int = 1):
        self.seeds = seeds
        self.builder = builder
        self.day_workers = max(1, day_workers)

    def plan_trip(self, country: str, trip_type: str, day_count: int = 1,
                  constraints: Optional[Constraints] = None,
                  deadline: Optional[Deadline] = None) -> Plan:
        """Plan a trip or raise.

        Raises:
            InvalidInputError: country or trip type missing (nothing is called).
            DeadlineExceededError: the deadline ran out mid-planning.
            PlanningError: every attempt failed; ``reason`` is
                ``no_valid_days``, ``bike_distance_limits_exceeded`` or
                ``planning_failed``.
        """
        if not isinstance(country, str) or not country.strip():
            raise InvalidInputError("country is required")
        if not isinstance(trip_type, str) or not trip_type.strip():
            raise InvalidInputError("tripType is required")

        country = country.strip()
        constraints = replace(constraints or Constraints(), day_count=clamp_day_count(day_count))
        deadline = deadline or NO_DEADLINE
        walking = is_walking_trip(trip_type)

        attempts: List[PlanAttempt] = []
        for number in range(1, constraints.max_replans + 1):
            try:
                deadline.check()
                attempt = self._run_attempt(number, country, trip_type, walking, constraints, deadline)
            except DeadlineExceededError as exc:
                logger.error(f"Planning {country} ({trip_type}) hit the deadline on attempt {number}")
                exc.attempts = attempts
                raise
            attempts.append(attempt)

            if attempt.status is AttemptStatus.ACCEPTED:
                logger.info(
                    f"Planned {len(attempt.days)} day(s) in {country} on attempt {number} "
                    f"({attempt.total_km} km)"
                )
                return Plan(trip_type="hike" if walking else "bike", country=country, days=attempt.days)

            if number == constraints.max_replans:
                attempt.status = AttemptStatus.FAILED
                if attempt.reason in _TERMINAL_REASONS:
                    raise PlanningError(attempt.reason, attempts)
            else:
                logger.warning(f"Attempt {number} for {country} failed ({attempt.reason}); replanning")

        raise PlanningError("planning_failed", attempts)

    # ------------------------------------------------------------------
    # One attempt
    # ------------------------------------------------------------------

    def _run_attempt(self, number: int, country: str, trip_type: str, walking: bool,
                     constraints: Constraints, deadline: Deadline) -> PlanAttempt:
        multi_day = constraints.day_count > 1
        try:
            seeds = self.seeds.request_seed(
                country,
                trip_type,
                constraints.day_count,
                max_per_day_km=None if walking else constraints.bike_max_per_day_km,
                total_max_km=constraints.bike_total_max_km if not walking and multi_day else None,
                deadline=deadline,
            )
            days = self._build_days(seeds, walking, constraints, deadline)
            if not days:
                return PlanAttempt(number, AttemptStatus.RETRY, reason="no_valid_days")
            total_km = round(sum(day.distance_km for day in days), 2)
            if not walking:
                self._check_bike_limits(days, total_km, constraints)
        except tuple(exc_type for exc_type, _ in _RETRYABLE) as exc:
            reason = next(r for exc_type, r in _RETRYABLE if isinstance(exc, exc_type))
            logger.info(f"Attempt {number}: {reason}: {exc}")
            return PlanAttempt(number, AttemptStatus.RETRY, reason=reason,
                               total_km=getattr(exc, "total_km", 0.0))

        return PlanAttempt(number, AttemptStatus.ACCEPTED, days=days, total_km=total_km)

    def _build_days(self, seeds: List[DaySeed], walking: bool, constraints: Constraints,
                    deadline: Deadline) -> List[Day]:
        jobs: List[Callable[[], Day]] = []
        for seed in seeds:
            if walking:
                if not isinstance(seed, HikeSeed) or seed.target is None or not seed.target.is_valid():
                    logger.warning(f"Skipping day {seed.day}: invalid walking target")
                    continue
                jobs.append(partial(
                    self.builder.build_walking_loop,
                    seed.target,
                    min_km=constraints.walking_min_km,
                    max_km=constraints.walking_max_km,
                    max_tries=constraints.max_loop_tries,
                    index=seed.day,
                    deadline=deadline,
                ))
            else:
                if not isinstance(seed, BikeSeed) or seed.origin is None or seed.destination is None:
                    logger.warning(f"Skipping day {seed.day}: missing biking endpoint")
                    continue
                if not seed.origin.is_valid() or not seed.destination.is_valid():
                    logger.warning(f"Skipping day {seed.day}: invalid biking coordinates")
                    continue
                jobs.append(partial(
                    self.builder.build_biking_day,
                    seed.origin,
                    seed.destination,
                    index=seed.day,
                    deadline=deadline,
                ))

        if self.day_workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=min(self.day_workers, len(jobs))) as pool:
                futures = [pool.submit(job) for job in jobs]
                return [future.result() for future in futures]
        return [job() for job in jobs]

    @staticmethod
    def _check_bike_limits(days: List[Day], total_km: float, constraints: Constraints) -> None:
        limit = constraints.bike_limit_km()
        too_long = [day.index for day in days if day.distance_km > constraints.bike_max_per_day_km]
        if too_long or total_km > limit:
            raise ConstraintViolationError(
                f"Bike distances exceed limits (days over {constraints.bike_max_per_day_km:g} km: "
                f"{too_long}, total {total_km} km, limit {limit:g} km)",
                total_km=total_km,
                limit_km=limit,
            )


def get_itinerary_service() -> ItineraryService:
    """Build an ItineraryService wired to the configured AI and routing services."""
    cfg = get_planner_config()
    builder = DayBuilder(get_routing_client())
    return ItineraryService(SeedGenerator(), builder, day_workers=cfg["day_workers"])


def constraints_from_limits(limits: Optional[dict]) -> Constraints:
    """Map the request's ``limits`` object onto Constraints, filling defaults."""
    if limits is None:
        limits = {}
    if not isinstance(limits, dict):
        raise InvalidInputError("limits must be an object")

    def _get(key, default):
        value = limits.get(key)
        return default if value is None else value

    cfg = get_planner_config()
    try:
        return Constraints(
            walking_min_km=float(_get("min", 5)),
            walking_max_km=float(_get("max", 15)),
            bike_max_per_day_km=float(_get("maxPerDayKm", 60)),
            bike_total_max_km=float(_get("totalMax", 120)),
            max_loop_tries=cfg["max_loop_tries"],
            max_replans=cfg["max_replans"],
            day_count=_get("maxDays", 2),
        )
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Invalid limits: {exc}") from exc
