"""
Great-circle distance on a spherical earth (mean radius 6371 km).
"""
import math
from decimal import Decimal
from typing import Union

EARTH_RADIUS_KM = 6371.0

Number = Union[float, int, Decimal]


def haversine_km(
    lat1: Number, lon1: Number, lat2: Number, lon2: Number
) -> float:
    """Haversine distance in km between two points in decimal degrees.

    Same great circle as R * acos(cos(lat1) cos(lat2) cos(dlon) + sin(lat1) sin(lat2)),
    but without the acos rounding error near zero: identical points give exactly 0.
    """
    lat1, lon1, lat2, lon2 = map(math.radians, map(float, (lat1, lon1, lat2, lon2)))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(min(1.0, a)))
    return EARTH_RADIUS_KM * c
