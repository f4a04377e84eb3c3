"""
Human-readable "At X" / "Near X" labels for roster locations.

Lookups go to Nominatim and are cached in-process, keyed by coordinates
rounded to 4 decimals (~11 m). Any failure means no label.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import config
from utils.datetime_helpers import utcnow
from utils.geocoding_helpers import haversine_distance, reverse_geocode_coords

# Simple in-memory cache (for production use Redis)
_cache: Dict[str, tuple[Any, datetime]] = {}

BUILDING_LIKE_CLASSES = {
    "building", "amenity", "shop", "tourism", "leisure", "office",
    "healthcare", "historic", "emergency", "public_transport", "railway",
}
BUILDING_LIKE_TYPES = {"building", "hospital", "school", "church", "civic"}

_NAMEDETAIL_KEYS = ("name", "name:en", "official_name", "short_name", "operator")
_ADDRESS_KEYS = ("amenity", "building", "shop", "tourism", "leisure", "office", "hospital", "healthcare", "attraction")


def _cache_ttl() -> timedelta:
    return timedelta(minutes=max(5, config.NOMINATIM_CACHE_MINUTES))


def _get_cache(key: str) -> Optional[Any]:
    """Get cached value if not expired."""
    if key in _cache:
        value, expiry = _cache[key]
        if utcnow() < expiry:
            return value
        del _cache[key]
    return None


def _set_cache(key: str, value: Any):
    """Cache value with TTL, dropping entries that have already expired."""
    now = utcnow()
    for stale in [k for k, (_, expiry) in _cache.items() if expiry <= now]:
        del _cache[stale]
    _cache[key] = (value, now + _cache_ttl())


def clear_cache():
    _cache.clear()


def extract_name(payload: dict) -> Optional[str]:
    direct = str(payload.get("name") or "").strip()
    if direct:
        return direct

    named = payload.get("namedetails") if isinstance(payload.get("namedetails"), dict) else {}
    for key in _NAMEDETAIL_KEYS:
        value = str(named.get(key) or "").strip()
        if value:
            return value

    address = payload.get("address") if isinstance(payload.get("address"), dict) else {}
    for key in _ADDRESS_KEYS:
        value = str(address.get(key) or "").strip()
        if value:
            return value

    first = str(payload.get("display_name") or "").split(",")[0].strip()
    return first or None


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def summarize_lookup(payload: dict) -> dict:
    return {
        "status": "ok",
        "name": extract_name(payload),
        "class": payload.get("class"),
        "type": payload.get("type"),
        "target_lat": _to_float(payload.get("lat")),
        "target_lng": _to_float(payload.get("lon")),
    }


def qualify_lookup(lookup: dict, lat: float, lng: float, accuracy: Optional[float]) -> Optional[dict]:
    """Decide whether a looked-up place is close enough to label the reading with."""
    name = (lookup.get("name") or "").strip()
    target_lat = lookup.get("target_lat")
    target_lng = lookup.get("target_lng")
    if not name or target_lat is None or target_lng is None:
        return None

    distance = haversine_distance(lat, lng, target_lat, target_lng)

    accuracy = min(max(accuracy, 8), 250) if accuracy is not None and accuracy > 0 else 30
    at_threshold = max(28, min(80, accuracy * 1.4))
    near_threshold = max(55, min(180, accuracy * 2.4))

    place_class = str(lookup.get("class") or "").lower()
    place_type = str(lookup.get("type") or "").lower()
    building_like = place_class in BUILDING_LIKE_CLASSES or place_type in BUILDING_LIKE_TYPES

    if building_like and distance <= at_threshold:
        return {
            "label": f"At {name}",
            "name": name,
            "relation": "at",
            "distance_m": int(round(distance)),
            "confidence": "high" if distance <= at_threshold * 0.65 else "medium",
            "source": "nominatim",
        }

    if distance <= near_threshold:
        return {
            "label": f"Near {name}",
            "name": name,
            "relation": "near",
            "distance_m": int(round(distance)),
            "confidence": "medium",
            "source": "nominatim",
        }

    return None


async def resolve(lat: float, lng: float, accuracy: Optional[float] = None) -> Optional[dict]:
    if not config.NOMINATIM_ENABLED:
        return None

    cache_key = f"place-label:{round(lat, 4):.4f}:{round(lng, 4):.4f}"
    lookup = _get_cache(cache_key)
    if lookup is None:
        payload = await reverse_geocode_coords(lat, lng)
        lookup = summarize_lookup(payload) if payload else {"status": "none"}
        _set_cache(cache_key, lookup)

    if lookup.get("status") != "ok":
        return None

    return qualify_lookup(lookup, lat, lng, accuracy)
