"""Great-circle distance and numeric coercion helpers."""
import math
from typing import Any

from clickcollect.schemas.pickup import GeoPoint, Coordinates

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: "GeoPoint | Coordinates", b: "GeoPoint | Coordinates") -> float:
    """
    Great-circle distance in kilometers between two points.

    Same result as the haversine formula, but the central angle comes from
    atan2 (Vincenty's spherical form), which keeps full precision for both
    identical and antipodal points where asin(sqrt(h)) loses digits.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lng = math.radians(b.lng - a.lng)

    sin_lat1, cos_lat1 = math.sin(lat1), math.cos(lat1)
    sin_lat2, cos_lat2 = math.sin(lat2), math.cos(lat2)
    cos_d_lng = math.cos(d_lng)

    y = math.hypot(
        cos_lat2 * math.sin(d_lng),
        cos_lat1 * sin_lat2 - sin_lat1 * cos_lat2 * cos_d_lng,
    )
    x = sin_lat1 * sin_lat2 + cos_lat1 * cos_lat2 * cos_d_lng
    return EARTH_RADIUS_KM * math.atan2(y, x)


def number_or(value: Any, fallback: float) -> float:
    """Return ``value`` as a finite float, or ``fallback`` if it isn't one."""
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback
