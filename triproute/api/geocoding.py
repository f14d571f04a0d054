# triproute/api/geocoding.py
from __future__ import annotations

import logging
from functools import lru_cache

import googlemaps
from googlemaps.exceptions import ApiError, HTTPError, Timeout, TransportError

from triproute.api.config import get_google_maps_api_key
from triproute.api.errors import GeocodingError

logger = logging.getLogger(__name__)

_gmaps: googlemaps.Client | None = None


def _get_client() -> googlemaps.Client:
    """Return a cached googlemaps.Client instance."""
    global _gmaps
    if _gmaps is None:
        api_key = get_google_maps_api_key()
        if not api_key:
            raise GeocodingError("No Google Maps API key configured")
        try:
            _gmaps = googlemaps.Client(key=api_key, timeout=15)
        except ValueError as e:
            raise GeocodingError(f"Failed to initialize Google Maps client: {e}") from e
        logger.info(f"Initialized Google Maps client with key: {api_key[:6]}...")
    return _gmaps


@lru_cache(maxsize=1000)
def reverse_geocode(lat: float, lng: float) -> str | None:
    """Resolve a coordinate to a display name, or None if nothing is there.

    Raises GeocodingError when the lookup itself fails, so callers can tell
    "nothing found" apart from "service down". Only successful lookups are
    cached.
    """
    client = _get_client()
    try:
        logger.debug(f"Reverse geocoding {lat}, {lng}")
        results = client.reverse_geocode((lat, lng), language="en")
    except (ApiError, HTTPError, Timeout, TransportError) as e:
        logger.error(f"Reverse geocoding error for {lat}, {lng}: {e}")
        raise GeocodingError(str(e)) from e

    if not results:
        logger.warning(f"No results found for {lat}, {lng}")
        return None
    return results[0].get("formatted_address") or None


__all__ = ["reverse_geocode"]
