"""
Great-circle distance between a pickup point and a driver.

Straight-line (Haversine) distance is used to rank and filter drivers; the
billed distance is whatever the customer submitted with the booking, not
this value.

Complexity: O(1) per call.
"""

import math

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    half_dphi = math.radians(lat2 - lat1) / 2
    half_dlambda = math.radians(lng2 - lng1) / 2

    h = (
        math.sin(half_dphi) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(half_dlambda) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def within_radius(
    lat1: float, lng1: float, lat2: float, lng2: float, radius_km: float
) -> bool:
    return haversine_km(lat1, lng1, lat2, lng2) <= radius_km
