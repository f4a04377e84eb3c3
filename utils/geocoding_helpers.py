"""
Geocoding helper utilities: Nominatim reverse lookups and great-circle distance.
"""
import httpx
from typing import Optional

import config
from utils.logger import setup_api_logger

logger = setup_api_logger()


async def reverse_geocode_coords(
    lat: float,
    lon: float,
    timeout: Optional[float] = None
) -> Optional[dict]:
    """
    Reverse-geocode coordinates to the nearest named feature using Nominatim.

    Returns:
        The raw jsonv2 payload (with namedetails/addressdetails) or None
    """
    try:
        async with httpx.AsyncClient(timeout=timeout or config.NOMINATIM_TIMEOUT_SECONDS) as client:
            resp = await client.get(
                config.NOMINATIM_BASE_URL,
                params={
                    "format": "jsonv2",
                    "lat": lat,
                    "lon": lon,
                    "zoom": 18,
                    "addressdetails": 1,
                    "namedetails": 1,
                },
                headers={
                    "User-Agent": config.NOMINATIM_USER_AGENT,
                    "Accept-Language": config.NOMINATIM_ACCEPT_LANGUAGE,
                    "Accept": "application/json",
                }
            )
            resp.raise_for_status()
            data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Nominatim place lookup failed: %s", e)
        return None

    if not isinstance(data, dict) or "error" in data:
        return None
    return data


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on the Earth
    (specified in decimal degrees) using the Haversine formula.

    Returns:
        Distance in meters
    """
    from math import radians, cos, sin, asin, sqrt

    # Convert decimal degrees to radians
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    # Haversine formula
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * asin(sqrt(a))

    # Radius of earth in meters
    r = 6371000

    return c * r
