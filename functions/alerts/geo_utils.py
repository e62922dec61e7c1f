# alerts/geo_utils.py

import math
from typing import Any, Optional, Tuple

# Mean Earth radius shared by the Haversine filter and the geohash planner
EARTH_RADIUS_M = 6371000.0


def to_finite_float(value: Any) -> Optional[float]:
    """
    Parse a Firestore field value as a finite float.

    Numbers and numeric strings are accepted. Booleans, None, NaN, infinities
    and anything unparseable return None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def is_valid_coordinate(latitude: Optional[float], longitude: Optional[float]) -> bool:
    if latitude is None or longitude is None:
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def distance_between_meters(location1: Tuple[float, float], location2: Tuple[float, float]) -> float:
    """Great-circle (Haversine) distance in meters between two (lat, lon) points."""
    lat1, lon1 = location1
    lat2, lon2 = location2
    lat_delta = math.radians(lat2 - lat1)
    lon_delta = math.radians(lon2 - lon1)

    a = (math.sin(lat_delta / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2))
         * math.sin(lon_delta / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def read_location(location: Any) -> Tuple[Optional[float], Optional[float]]:
    """
    Extract (latitude, longitude) from a user's stored location.

    Users store either a map {latitude, longitude} or a Firestore GeoPoint.
    """
    if location is None:
        return None, None
    if isinstance(location, dict):
        lat = location.get("latitude")
        lon = location.get("longitude")
    else:
        lat = getattr(location, "latitude", None)
        lon = getattr(location, "longitude", None)
    return to_finite_float(lat), to_finite_float(lon)
