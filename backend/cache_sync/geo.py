"""Great-circle distance between two points and its display formatting."""
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Optional

EARTH_RADIUS_KM = 6371.0
# Shown instead of a number when the user's position is unknown.
UNKNOWN_DISTANCE = "unknown"


class GeoPoint(NamedTuple):
    latitude: float
    longitude: float


def haversine_km(origin: GeoPoint, target: GeoPoint) -> float:
    """Haversine distance in km (WGS84 degrees, no range validation)."""
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(target.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(target.longitude - origin.longitude)
    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km_rounded(origin: GeoPoint, target: GeoPoint) -> int:
    """Whole kilometres, rounded to nearest (city cards)."""
    return int(math.floor(haversine_km(origin, target) + 0.5))


def _round_half_up(value: float, places: str) -> Decimal:
    # Exact binary value of the float; halves round away from zero.
    return Decimal(value).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def format_km(distance_km: float) -> str:
    """'<m> m' under 1 km, one decimal under 10 km, whole km otherwise (halves round up)."""
    if distance_km < 1:
        return f"{int(distance_km * 1000)} m"
    if distance_km < 10:
        return f"{_round_half_up(distance_km, '0.1')} km"
    return f"{_round_half_up(distance_km, '1')} km"


def format_distance(origin: Optional[GeoPoint], target: GeoPoint) -> str:
    """Formatted distance from origin to target, or UNKNOWN_DISTANCE without an origin."""
    if origin is None:
        return UNKNOWN_DISTANCE
    return format_km(haversine_km(origin, target))
