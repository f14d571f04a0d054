"""LLM helper functions for the trip planner.

Asks an OpenAI-compatible chat completions endpoint (Groq by default) for an
itinerary skeleton: one well-known landmark per walking day, or one city pair
per biking day. The reply must be a single JSON object; anything else is an
``AiFormatError`` and the planner asks again.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from triproute.api.config import get_ai_api_key, get_ai_config
from triproute.api.deadline import NO_DEADLINE, Deadline
from triproute.api.errors import AiFormatError, AiServiceError
from triproute.api.models import BikeSeed, DaySeed, HikeSeed, NamedPoint

logger = logging.getLogger(__name__)

_WALKING_RE = re.compile(r"hik(e|ing)|walk|foot", re.IGNORECASE)

# ---------------------------------------------------------------------------
# Prompt construction helpers
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "You are a precise trip planner. Reply with a single strict JSON object "
    "and nothing else: no prose, no markdown fences. "
    "Only use well-known, routable places inside the requested country. "
    "For walking trips pick named urban points of interest from diverse "
    "categories (museums, galleries, markets, historic squares, old city "
    "gates and clock towers, libraries, universities, city halls, theaters "
    "and opera houses, religious sites, monuments and memorials, landmark "
    "bridges, viewpoints, waterfront promenades, central stations, stadiums, "
    "aquariums and zoos, botanical gardens, covered arcades, street-art "
    "alleys, notable streets and neighborhoods), not only parks or nature. "
    "Every coordinate must be a plausible decimal latitude/longitude inside "
    "the country."
)


def is_walking_trip(trip_type: str) -> bool:
    """Walking trips are anything that mentions hiking, walking or foot."""
    return bool(_WALKING_RE.search(trip_type or ""))


def bike_distance_band(max_per_day_km: Optional[float]) -> tuple[int, int]:
    """Per-day distance window to ask for: 80%-100% of the cap, never below 30 km."""
    cap = max_per_day_km or 60
    return max(30, int(math.floor(cap * 0.8))), int(cap)


def _walking_prompt(country: str, days: int) -> str:
    entries = ",".join(
        f'{{"day":{i},"target":{{"name":"<famous landmark>","lat":<lat>,"lon":<lon>}}}}'
        for i in range(1, days + 1)
    )
    return (
        f"Country: {country}\n"
        "Trip type: walking loops\n"
        f"Days: {days}\n"
        f"Choose {days} distinct landmark(s), one per day.\n"
        "Return JSON ONLY:\n"
        f'{{"tripType":"hike","country":"{country}","days":[{entries}]}}\n'
    )


def _biking_prompt(country: str, days: int, max_per_day_km: Optional[float],
                   total_max_km: Optional[float]) -> str:
    low, high = bike_distance_band(max_per_day_km)
    entries = ",".join(
        f'{{"day":{i},"from":{{"name":"<city>","lat":<lat>,"lon":<lon>}},'
        f'"to":{{"name":"<city>","lat":<lat>,"lon":<lon>}}}}'
        for i in range(1, days + 1)
    )
    total_line = (
        f"The total across all days must be at most {total_max_km:g} km. "
        if days > 1 and total_max_km else ""
    )
    return (
        f"Country: {country}\n"
        "Trip type: biking city-to-city\n"
        f"Days: {days}\n"
        f"Constraint: pick pairs of cities whose bicycle road distance is about "
        f"{low}-{high} km per day. {total_line}"
        "Avoid border crossings. Return JSON ONLY:\n"
        f'{{"tripType":"bike","country":"{country}","days":[{entries}]}}\n'
    )


def build_messages(country: str, trip_type: str, day_count: int,
                   max_per_day_km: Optional[float] = None,
                   total_max_km: Optional[float] = None) -> List[Dict[str, str]]:
    if is_walking_trip(trip_type):
        user = _walking_prompt(country, day_count)
    else:
        user = _biking_prompt(country, day_count, max_per_day_km, total_max_km)
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _point(raw: Any) -> Optional[NamedPoint]:
    if not isinstance(raw, dict):
        return None
    lon = raw.get("lon", raw.get("lng"))
    return NamedPoint(
        name=str(raw.get("name") or "").strip(),
        lat=_to_float(raw.get("lat")),
        lon=_to_float(lon),
    )


def _day_index(raw: Any, position: int) -> int:
    try:
        day = int(raw)
    except (TypeError, ValueError):
        return position
    return day if day > 0 else position


def parse_seed(content: Optional[str], walking: bool) -> List[DaySeed]:
    """Turn the model's raw JSON string into seeds.

    Coordinates are not validated here; bad ones come through as NaN or out
    of range and are dropped by the planner.
    """
    if not content or not content.strip():
        raise AiFormatError("AI returned an empty response")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse AI seed response: %s", exc)
        raise AiFormatError("AI returned non-JSON") from exc

    if not isinstance(payload, dict):
        raise AiFormatError("AI response is not a JSON object")
    days = payload.get("days", [])
    if not isinstance(days, list):
        raise AiFormatError("AI response 'days' is not a list")

    seeds: List[DaySeed] = []
    for position, entry in enumerate(days, start=1):
        if not isinstance(entry, dict):
            continue
        index = _day_index(entry.get("day"), position)
        if walking:
            seeds.append(HikeSeed(day=index, target=_point(entry.get("target"))))
        else:
            seeds.append(BikeSeed(
                day=index,
                origin=_point(entry.get("from")),
                destination=_point(entry.get("to")),
            ))
    return seeds


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

class SeedGenerator:
    """Requests itinerary skeletons from the AI completion service."""

    def __init__(self, client: Optional[OpenAI] = None, config: Optional[Dict[str, Any]] = None):
        self._client = client
        self.config = config or get_ai_config()

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            try:
                api_key = get_ai_api_key()
            except ValueError as exc:
                raise AiServiceError(str(exc)) from exc
            self._client = OpenAI(api_key=api_key, base_url=self.config["base_url"])
        return self._client

    def request_seed(self, country: str, trip_type: str, day_count: int,
                     max_per_day_km: Optional[float] = None,
                     total_max_km: Optional[float] = None,
                     deadline: Deadline = NO_DEADLINE) -> List[DaySeed]:
        """Ask the model for ``day_count`` seed entries. One request per call."""
        walking = is_walking_trip(trip_type)
        messages = build_messages(country, trip_type, day_count, max_per_day_km, total_max_km)
        timeout = deadline.timeout_for(self.config["timeout"])

        logger.debug(
            "Calling AI seed service: model=%s country=%s type=%s days=%d",
            self.config["model"], country, trip_type, day_count,
        )
        try:
            response = self.client.chat.completions.create(
                model=self.config["model"],
                messages=messages,
                temperature=self.config["temperature"],
                response_format={"type": "json_object"},
                timeout=timeout,
            )
        except OpenAIError as exc:
            logger.error(f"AI seed request failed: {exc}")
            raise AiServiceError(str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        seeds = parse_seed(content, walking)
        logger.info(f"AI seed for {country} ({'hike' if walking else 'bike'}): {len(seeds)} day(s)")
        return seeds
