"""
Great-circle helpers.
"""

from math import atan2, cos, radians, sin, sqrt
from typing import Sequence, Tuple

EARTH_RADIUS_KM = 6371.0

BoundingBox = Tuple[float, float, float, float]  # (min_lat, min_lng, max_lat, max_lng)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance in kilometers between two points using the Haversine formula."""
    lat1_rad, lon1_rad = radians(lat1), radians(lon1)
    lat2_rad, lon2_rad = radians(lat2), radians(lon2)

    dlat = lat2_rad - lat1_rad
    dlon = lon2_rad - lon1_rad

    a = sin(dlat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def path_length(coordinates: Sequence[Tuple[float, float]]) -> float:
    """Total length in kilometers of a polyline given as (lat, lng) pairs."""
    return sum(
        haversine_distance(a[0], a[1], b[0], b[1])
        for a, b in zip(coordinates, coordinates[1:])
    )


def validate_bbox(bbox: BoundingBox) -> BoundingBox:
    """Check ordering and ranges of a (min_lat, min_lng, max_lat, max_lng) box."""
    min_lat, min_lng, max_lat, max_lng = bbox
    if not (-90 <= min_lat <= max_lat <= 90):
        raise ValueError(f"Invalid latitude bounds: {min_lat}, {max_lat}")
    if not (-180 <= min_lng <= max_lng <= 180):
        raise ValueError(f"Invalid longitude bounds: {min_lng}, {max_lng}")
    return bbox
