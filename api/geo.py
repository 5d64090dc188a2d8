# geo.py
# Distance helpers for nearby-peddler search

# @see: api/nearby.py - Filters and sorts peddlers by distance

import math

EARTH_RADIUS_METERS = 6371e3


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates, in meters."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def format_distance(meters: float) -> str:
    """Render 450.2 as "450m" and 1234 as "1.2km"."""
    if meters < 1000:
        # Half-up, so 12.5 -> "13m"
        return f"{math.floor(meters + 0.5)}m"
    return f"{meters / 1000:.1f}km"
