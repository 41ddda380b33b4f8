"""
Great-circle distance between a caller and a facility.

Straight-line ("as the crow flies") distance; road distance is usually longer.
"""

import math

EARTH_RADIUS_KM = 6371


def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Distance in kilometers between two (latitude, longitude) points
    given in decimal degrees.
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.asin(math.sqrt(a))

    return c * EARTH_RADIUS_KM


def distance_to(latitude, longitude, facility_latitude, facility_longitude):
    """Rounded distance to a facility, or None when its coordinates are unknown"""
    if facility_latitude is None or facility_longitude is None:
        return None
    return round(
        haversine_distance(latitude, longitude, facility_latitude, facility_longitude),
        3,
    )
