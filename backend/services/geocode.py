"""
Geocoding: convert a caller-reported address → lat/lng via OpenStreetMap Nominatim (free).
Results are cached in memory so repeat callers from the same address cost nothing.
"""

import logging

import requests

from config import GEOCODE_AREA

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "pulsepoint-eris/1.0"

_geocode_cache: dict[str, dict | None] = {}


def geocode_location(address: str) -> dict | None:
    """
    Return {"lat": ..., "lng": ..., "confidence": 0-100} for an address, or None.
    Confidence is derived from Nominatim's 'importance' field (0-1 → 0-100%).
    Failures are cached as None too; the call is logged either way.
    """
    if not address or not address.strip():
        return None

    cache_key = address.strip().lower()
    if cache_key in _geocode_cache:
        return _geocode_cache[cache_key]

    query = f"{address}, {GEOCODE_AREA}" if GEOCODE_AREA else address
    pin = None
    try:
        resp = requests.get(
            NOMINATIM_URL,
            params={"q": query, "format": "json", "limit": 1},
            headers={"User-Agent": USER_AGENT},
            timeout=3,
        )
        resp.raise_for_status()
        results = resp.json()
        if results:
            hit = results[0]
            importance = float(hit.get("importance", 0.5))
            pin = {
                "lat": float(hit["lat"]),
                "lng": float(hit["lon"]),
                "confidence": min(100, max(0, round(importance * 100))),
            }
            logger.info("[Geocode] '%s' → %.4f, %.4f (%s%% confidence)", address, pin["lat"], pin["lng"], pin["confidence"])
    except (requests.RequestException, ValueError, KeyError) as e:
        logger.warning("[Geocode] Failed for '%s': %s", address, e)

    _geocode_cache[cache_key] = pin
    return pin


def clear_cache() -> None:
    _geocode_cache.clear()
