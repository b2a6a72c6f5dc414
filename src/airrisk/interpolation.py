"""
Inverse Distance Weighting (IDW) interpolation between monitoring stations.

    z(x) = sum(w_i * z_i) / sum(w_i),   w_i = 1 / d_i ** power

Only stations within ``max_distance_km`` take part. When the nearest station
is closer than ``NEAR_STATION_KM`` its values are returned as-is, which also
avoids the singularity of 1/d at d -> 0.

Confidence blends three factors in [0, 1]:

- station count: min(n / 5, 1), weight 0.3
- nearest distance: 1 - d_min / max_distance_km, weight 0.5
- evenness: normalized Shannon entropy of the weights, weight 0.2

Stations reporting the same coordinates under different ids are not merged;
each one contributes its own weight.
"""

import logging
from math import log2
from typing import List, Optional, Sequence, Tuple

from .exceptions import InterpolationUnavailable
from .geo import BoundingBox, haversine_distance, validate_bbox
from .models import ContributingStation, InterpolatedPoint, StationReading

logger = logging.getLogger(__name__)

MAX_DISTANCE_KM = 50.0
NEAR_STATION_KM = 1.0
IDW_POWER = 2

STATION_COUNT_SATURATION = 5
COUNT_WEIGHT = 0.3
DISTANCE_WEIGHT = 0.5
ENTROPY_WEIGHT = 0.2


def nearby_stations(
    latitude: float,
    longitude: float,
    stations: Sequence[StationReading],
    max_distance_km: float = MAX_DISTANCE_KM,
    limit: Optional[int] = None,
) -> List[Tuple[StationReading, float]]:
    """
    Find stations near a given location.

    Args:
        latitude: Target latitude
        longitude: Target longitude
        stations: Candidate readings; readings without coordinates are skipped
        max_distance_km: Maximum distance to search
        limit: Maximum number of stations to return

    Returns:
        List of (StationReading, distance_km) tuples, sorted by distance
    """
    nearby = []
    for station in stations:
        if not station.has_location:
            continue
        distance = haversine_distance(
            latitude, longitude, station.latitude, station.longitude  # type: ignore[arg-type]
        )
        if distance <= max_distance_km:
            nearby.append((station, distance))

    # Stable: equal distances keep input order
    nearby.sort(key=lambda x: x[1])

    return nearby[:limit] if limit is not None else nearby


def entropy_factor(weights: Sequence[float]) -> float:
    """
    Normalized Shannon entropy of a weight distribution.

    1.0 for a single weight or perfectly even weights, towards 0 when one
    weight dominates.
    """
    if len(weights) <= 1:
        return 1.0

    entropy = -sum(w * log2(w) for w in weights if w > 0)
    max_entropy = log2(len(weights))
    return entropy / max_entropy if max_entropy > 0 else 0.0


def interpolate(
    target_lat: float,
    target_lng: float,
    stations: Sequence[StationReading],
    max_distance_km: float = MAX_DISTANCE_KM,
    power: float = IDW_POWER,
) -> Optional[InterpolatedPoint]:
    """
    Estimate PM2.5 and AQI at a coordinate from surrounding stations.

    Args:
        target_lat: Target latitude
        target_lng: Target longitude
        stations: Station readings to interpolate from
        max_distance_km: Stations farther than this are ignored
        power: IDW distance exponent

    Returns:
        InterpolatedPoint, or None when no station is within range. A missing
        estimate is never replaced by a default value.
    """
    in_range = nearby_stations(target_lat, target_lng, stations, max_distance_km)
    if not in_range:
        logger.debug(
            f"No stations within {max_distance_km} km of ({target_lat}, {target_lng})"
        )
        return None

    nearest, nearest_distance = in_range[0]
    if nearest_distance < NEAR_STATION_KM:
        return InterpolatedPoint(
            latitude=target_lat,
            longitude=target_lng,
            pm25=nearest.pm25,
            aqi=nearest.aqi,
            confidence=1.0,
            contributing_stations=[
                ContributingStation(nearest.station_id, 1.0, nearest_distance)
            ],
        )

    raw_weights = [1.0 / distance**power for _, distance in in_range]
    weight_sum = sum(raw_weights)
    weights = [w / weight_sum for w in raw_weights]

    pm25 = sum(w * station.pm25 for w, (station, _) in zip(weights, in_range))
    aqi = sum(w * station.aqi for w, (station, _) in zip(weights, in_range))

    count_factor = min(len(in_range) / STATION_COUNT_SATURATION, 1.0)
    distance_factor = 1.0 - nearest_distance / max_distance_km
    confidence = (
        count_factor * COUNT_WEIGHT
        + distance_factor * DISTANCE_WEIGHT
        + entropy_factor(weights) * ENTROPY_WEIGHT
    )
    confidence = min(max(round(confidence, 2), 0.0), 1.0)

    return InterpolatedPoint(
        latitude=target_lat,
        longitude=target_lng,
        pm25=pm25,
        aqi=aqi,
        confidence=confidence,
        contributing_stations=[
            ContributingStation(station.station_id, weight, distance)
            for weight, (station, distance) in zip(weights, in_range)
        ],
    )


def interpolate_or_raise(
    target_lat: float,
    target_lng: float,
    stations: Sequence[StationReading],
    max_distance_km: float = MAX_DISTANCE_KM,
    power: float = IDW_POWER,
) -> InterpolatedPoint:
    """Like ``interpolate`` but raises InterpolationUnavailable instead of returning None."""
    point = interpolate(target_lat, target_lng, stations, max_distance_km, power)
    if point is None:
        raise InterpolationUnavailable(
            f"No stations within {max_distance_km} km of ({target_lat}, {target_lng})"
        )
    return point


def interpolate_grid(
    bbox: BoundingBox,
    stations: Sequence[StationReading],
    steps: int = 10,
    max_distance_km: float = MAX_DISTANCE_KM,
    power: float = IDW_POWER,
) -> List[InterpolatedPoint]:
    """
    Interpolate a regular ``steps`` x ``steps`` grid over a bounding box.

    Grid cells with no station in range are left out, so the result can be
    shorter than ``steps ** 2``.
    """
    if steps < 2:
        raise ValueError(f"steps must be at least 2, got {steps}")
    min_lat, min_lng, max_lat, max_lng = validate_bbox(bbox)

    lat_step = (max_lat - min_lat) / (steps - 1)
    lng_step = (max_lng - min_lng) / (steps - 1)

    points = []
    for i in range(steps):
        for j in range(steps):
            point = interpolate(
                min_lat + i * lat_step,
                min_lng + j * lng_step,
                stations,
                max_distance_km,
                power,
            )
            if point is not None:
                points.append(point)
    return points
