from __future__ import annotations
from math import asin, cos, radians, sin, sqrt

from ..schemas import Coordinates

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_MILE = 1609.34
MILES_PER_METER = 0.000621371

def distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle (haversine) distance in meters."""
    lat1, lon1 = radians(a.latitude), radians(a.longitude)
    lat2, lon2 = radians(b.latitude), radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # float error can push h a hair past 1 for antipodal points
    return 2 * EARTH_RADIUS_M * asin(sqrt(min(1.0, h)))

def format_distance(meters: float) -> str:
    if meters < 0:
        raise ValueError("distance must be non-negative")
    miles = meters * MILES_PER_METER
    if miles < 0.1:
        return "Less than 0.1 miles"
    return f"{miles:.1f} miles"
