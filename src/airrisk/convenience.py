"""
High-level convenience functions for air quality and route exposure.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Mapping, Optional, Sequence, Union

from .cache import BaseCache
from .client import WAQIClient
from .config import EngineConfig
from .fetcher import AirQualityFetcher
from .geo import BoundingBox
from .models import (
    ActivityLevel,
    Coordinate,
    DirectionsRoute,
    FetchResult,
    PersonProfile,
    RouteCandidate,
    RouteRanking,
    StationReading,
    TravelMode,
)
from .ranking import rank_routes
from .routes import RouteSampler, route_coverage
from .utils import add_sync_version

logger = logging.getLogger(__name__)

# Degrees added around the routes when listing stations for interpolation
STATION_SEARCH_PADDING_DEG = 0.25

RouteSpec = Union[DirectionsRoute, Mapping[str, Any]]


@asynccontextmanager
async def _client_scope(
    config: Optional[EngineConfig], client: Optional[WAQIClient]
) -> AsyncIterator[WAQIClient]:
    """Yield the caller's client untouched, or a new one that is closed afterwards."""
    if client is not None:
        yield client
        return

    async with WAQIClient(config or EngineConfig.from_env()) as owned:
        yield owned


def _as_directions_route(route: RouteSpec) -> DirectionsRoute:
    if isinstance(route, DirectionsRoute):
        return route
    return DirectionsRoute.from_geojson(route)


def _padded_bbox(routes: Sequence[DirectionsRoute], padding: float) -> Optional[BoundingBox]:
    points = [point for route in routes for point in route.geometry]
    if not points:
        return None
    lats = [lat for lat, _ in points]
    lngs = [lng for _, lng in points]
    return (
        max(min(lats) - padding, -90.0),
        max(min(lngs) - padding, -180.0),
        min(max(lats) + padding, 90.0),
        min(max(lngs) + padding, 180.0),
    )


@add_sync_version
async def get_air_quality(
    latitude: float,
    longitude: float,
    config: Optional[EngineConfig] = None,
    cache: Optional[BaseCache[StationReading]] = None,
    use_cache: bool = True,
    client: Optional[WAQIClient] = None,
) -> FetchResult:
    """
    Get the current air quality at a coordinate.

    Args:
        latitude: Target latitude
        longitude: Target longitude
        config: Engine settings; read from the environment if omitted
        cache: Cache shared between calls; a private one is used if omitted
        use_cache: Serve a live cache entry without calling the provider
        client: Existing provider client to reuse (left open)

    Returns:
        FetchResult with the reading and whether it is fresh, cached, stale
        or unavailable

    Raises:
        ConfigurationError: If no API token is configured or it is rejected

    Examples:
        >>> result = await get_air_quality(13.75, 100.50)
        >>> result.reading.pm25 if result.ok else None
    """
    async with _client_scope(config, client) as provider:
        fetcher = AirQualityFetcher(provider, cache=cache)
        return await fetcher.fetch(latitude, longitude, use_cache=use_cache)


@add_sync_version
async def get_route_exposure(
    coordinates: Sequence[Coordinate],
    distance_meters: float,
    duration_seconds: float,
    config: Optional[EngineConfig] = None,
    cache: Optional[BaseCache[StationReading]] = None,
    sample_interval_km: Optional[float] = None,
    stations: Optional[Sequence[StationReading]] = None,
    cancel_event: Optional[asyncio.Event] = None,
    client: Optional[WAQIClient] = None,
) -> RouteCandidate:
    """
    Sample air quality along a single route.

    Args:
        coordinates: Polyline as (lat, lng) pairs
        distance_meters: Route length reported by the directions provider
        duration_seconds: Travel time reported by the directions provider
        config: Engine settings; read from the environment if omitted
        cache: Cache shared between calls
        sample_interval_km: Distance between samples; config value if omitted
        stations: Station readings used to interpolate points with no feed
        cancel_event: Setting this event aborts sampling
        client: Existing provider client to reuse (left open)

    Returns:
        RouteCandidate with its samples; ``average_pm25`` is None when no
        sample produced data
    """
    async with _client_scope(config, client) as provider:
        settings = provider.config
        sampler = RouteSampler(
            AirQualityFetcher(provider, cache=cache),
            max_concurrency=settings.max_concurrency,
            request_delay=settings.request_delay,
            stations=stations,
        )
        candidate = await sampler.sample_candidate(
            coordinates,
            distance_meters,
            duration_seconds,
            sample_interval_km or settings.sample_interval_km,
            cancel_event,
        )

    with_data, total = route_coverage(candidate.samples)
    logger.debug(f"Route exposure: {with_data}/{total} samples with data")
    return candidate


@add_sync_version
async def analyze_routes(
    routes: Sequence[RouteSpec],
    person: Optional[PersonProfile] = None,
    travel_mode: TravelMode = TravelMode.WALKING,
    activity_level: ActivityLevel = ActivityLevel.MODERATE,
    has_mask: bool = False,
    config: Optional[EngineConfig] = None,
    cache: Optional[BaseCache[StationReading]] = None,
    sample_interval_km: Optional[float] = None,
    interpolate_missing: bool = False,
    cancel_event: Optional[asyncio.Event] = None,
    client: Optional[WAQIClient] = None,
) -> RouteRanking:
    """
    Sample every alternative route and rank them by personal health risk.

    Routes are sampled one after another through a single fetcher, so sample
    points shared between routes are looked up once and the concurrency
    limit applies to the whole analysis.

    Args:
        routes: DirectionsRoute objects or raw directions route mappings
            (``{"geometry": {"coordinates": [[lng, lat], ...]}, "distance": ..., "duration": ...}``)
        person: Personal profile; a healthy adult if omitted
        travel_mode: Travel mode applied to every route
        activity_level: Activity level for the whole trip
        has_mask: Whether the traveller wears a mask
        config: Engine settings; read from the environment if omitted
        cache: Cache shared between calls
        sample_interval_km: Distance between samples; config value if omitted
        interpolate_missing: List stations around the routes first and
            interpolate sample points whose feed lookup fails
        cancel_event: Setting this event aborts the analysis
        client: Existing provider client to reuse (left open)

    Returns:
        RouteRanking with safest and fastest picks and the trade-off message

    Examples:
        >>> ranking = await analyze_routes(directions["routes"], PersonProfile(diseases={"asthma"}))
        >>> ranking.tradeoff_message
    """
    directions = [_as_directions_route(route) for route in routes]
    if not directions:
        raise ValueError("At least one route is required")

    candidates: List[RouteCandidate] = []
    async with _client_scope(config, client) as provider:
        settings = provider.config
        fetcher = AirQualityFetcher(provider, cache=cache)

        stations: List[StationReading] = []
        if interpolate_missing:
            bbox = _padded_bbox(directions, STATION_SEARCH_PADDING_DEG)
            if bbox is not None:
                stations = await fetcher.fetch_stations_in_bounds(bbox)
                logger.debug(f"Loaded {len(stations)} stations for interpolation")

        sampler = RouteSampler(
            fetcher,
            max_concurrency=settings.max_concurrency,
            request_delay=settings.request_delay,
            stations=stations,
        )
        interval = sample_interval_km or settings.sample_interval_km

        for index, route in enumerate(directions):
            candidate = await sampler.sample_candidate(
                route.geometry,
                route.distance_meters,
                route.duration_seconds,
                interval,
                cancel_event,
            )
            with_data, total = route_coverage(candidate.samples)
            logger.info(f"Route {index + 1}: {with_data}/{total} samples with data")
            candidates.append(candidate)

    return rank_routes(
        candidates,
        person=person,
        travel_mode=travel_mode,
        activity_level=activity_level,
        has_mask=has_mask,
    )
