"""
Geographic helpers for the nearest-service rule.
"""

import math

EARTH_RADIUS_METERS = 6371000
METERS_PER_DEGREE_LATITUDE = EARTH_RADIUS_METERS * math.pi / 180


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def latitude_band(latitude: float, radius_meters: float):
    """
    Latitude range that fully contains a circle of radius_meters.

    Used as a cheap range-query prefilter before the exact distance check.
    """
    delta = radius_meters / METERS_PER_DEGREE_LATITUDE
    return max(-90.0, latitude - delta), min(90.0, latitude + delta)
