"""Great-circle distance."""

import math

from fulfillment.models.location import Coordinates

EARTH_RADIUS_KM = 6371


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Distance between two points in km, rounded to 4 decimal places."""
    lat1, lng1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lng2 = math.radians(b.lat), math.radians(b.lng)

    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return round(EARTH_RADIUS_KM * c, 4)
