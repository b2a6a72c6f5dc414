"""
Route sampling: pick points along a polyline and look up air quality at each.

``sample_route`` is the pure geometric part. ``RouteSampler`` drives the
fetcher for every sample point with bounded concurrency and a per-request
delay to stay under provider rate limits.
"""

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from .fetcher import AirQualityFetcher
from .geo import haversine_distance
from .interpolation import interpolate
from .models import Coordinate, RouteCandidate, RouteSample, StationReading

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_INTERVAL_KM = 2.0


def from_lnglat(coordinates: Iterable[Sequence[float]]) -> List[Coordinate]:
    """Convert GeoJSON-ordered [lng, lat] pairs to (lat, lng) tuples."""
    return [(float(c[1]), float(c[0])) for c in coordinates]


def sample_route(
    coordinates: Sequence[Coordinate],
    sample_interval_km: float = DEFAULT_SAMPLE_INTERVAL_KM,
) -> List[Coordinate]:
    """
    Pick sample points along a polyline by accumulated arc length.

    The first vertex is always included. Walking the vertices, a vertex is
    emitted whenever the distance accumulated since the last emitted point
    reaches ``sample_interval_km``; the accumulator then restarts at zero.
    The last vertex is always included (once).

    Args:
        coordinates: Polyline as (lat, lng) pairs
        sample_interval_km: Distance between samples

    Returns:
        Sample points in route order
    """
    if sample_interval_km <= 0:
        raise ValueError(f"sample_interval_km must be positive, got {sample_interval_km}")
    if not coordinates:
        return []

    samples = [tuple(coordinates[0])]
    last_index = 0
    accumulated = 0.0

    for i in range(1, len(coordinates)):
        prev_lat, prev_lng = coordinates[i - 1]
        lat, lng = coordinates[i]
        accumulated += haversine_distance(prev_lat, prev_lng, lat, lng)

        if accumulated >= sample_interval_km:
            samples.append((lat, lng))
            last_index = i
            accumulated = 0.0

    if last_index != len(coordinates) - 1:
        samples.append(tuple(coordinates[-1]))

    logger.debug(
        f"Sampled {len(samples)} points from {len(coordinates)} vertices "
        f"every {sample_interval_km} km"
    )
    return samples  # type: ignore[return-value]


def build_route_candidate(
    geometry: Sequence[Coordinate],
    distance_meters: float,
    duration_seconds: float,
    samples: Optional[List[RouteSample]] = None,
) -> RouteCandidate:
    if distance_meters < 0 or duration_seconds < 0:
        raise ValueError("distance_meters and duration_seconds cannot be negative")
    return RouteCandidate(
        geometry=[tuple(c) for c in geometry],  # type: ignore[misc]
        distance_meters=distance_meters,
        duration_seconds=duration_seconds,
        samples=list(samples or []),
    )


async def _cancel_tasks(tasks: List["asyncio.Future[RouteSample]"]) -> None:
    """Cancel every pending lookup and wait until all have settled."""
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class RouteSampler:
    """
    Fetch air quality along a route.

    Args:
        fetcher: Fetcher used for every sample point
        max_concurrency: Upper bound on in-flight provider requests
        request_delay: Seconds each worker waits after a request
        stations: Optional station readings; a point the fetcher cannot
            serve is interpolated from these instead
        use_cache: Passed through to the fetcher
    """

    def __init__(
        self,
        fetcher: AirQualityFetcher,
        max_concurrency: int = 4,
        request_delay: float = 0.1,
        stations: Optional[Sequence[StationReading]] = None,
        use_cache: bool = True,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        if request_delay < 0:
            raise ValueError(f"request_delay cannot be negative, got {request_delay}")
        self.fetcher = fetcher
        self.max_concurrency = max_concurrency
        self.request_delay = request_delay
        self.stations = list(stations or [])
        self.use_cache = use_cache

    async def _sample_point(
        self,
        latitude: float,
        longitude: float,
        semaphore: asyncio.Semaphore,
        cancel_event: Optional[asyncio.Event],
    ) -> RouteSample:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                raise asyncio.CancelledError()

            result = await self.fetcher.fetch(latitude, longitude, use_cache=self.use_cache)
            if self.request_delay:
                await asyncio.sleep(self.request_delay)

        if result.reading is not None:
            return RouteSample(latitude, longitude, result.reading)

        if self.stations:
            point = interpolate(latitude, longitude, self.stations)
            if point is not None:
                logger.debug(f"Interpolated sample at ({latitude}, {longitude})")
                return RouteSample(latitude, longitude, point)

        logger.warning(f"No air quality data for sample at ({latitude}, {longitude})")
        return RouteSample(latitude, longitude, None)

    async def sample(
        self,
        coordinates: Sequence[Coordinate],
        sample_interval_km: float = DEFAULT_SAMPLE_INTERVAL_KM,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[RouteSample]:
        """
        Sample a route and look up air quality at every sample point.

        Args:
            coordinates: Polyline as (lat, lng) pairs
            sample_interval_km: Distance between samples
            cancel_event: Setting this event cancels outstanding lookups and
                makes this call raise asyncio.CancelledError

        Returns:
            RouteSample list in route order; samples without data carry
            ``reading=None``
        """
        points = sample_route(coordinates, sample_interval_km)
        if not points:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.ensure_future(self._sample_point(lat, lng, semaphore, cancel_event))
            for lat, lng in points
        ]
        gathered = asyncio.gather(*tasks)

        if cancel_event is None:
            try:
                return list(await gathered)
            except BaseException:
                await _cancel_tasks(tasks)
                raise

        watcher = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {gathered, watcher}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            gathered.cancel()
            raise
        finally:
            watcher.cancel()

        if gathered in done:
            try:
                return list(gathered.result())
            except BaseException:
                await _cancel_tasks(tasks)
                raise

        logger.info(f"Route sampling cancelled with {len(points)} points requested")
        await _cancel_tasks(tasks)
        raise asyncio.CancelledError("Route sampling cancelled")

    async def sample_candidate(
        self,
        geometry: Sequence[Coordinate],
        distance_meters: float,
        duration_seconds: float,
        sample_interval_km: float = DEFAULT_SAMPLE_INTERVAL_KM,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> RouteCandidate:
        """Sample a route and wrap it as a RouteCandidate."""
        samples = await self.sample(geometry, sample_interval_km, cancel_event)
        return build_route_candidate(geometry, distance_meters, duration_seconds, samples)


def route_coverage(samples: Sequence[RouteSample]) -> Tuple[int, int]:
    """(samples with data, total samples)"""
    return sum(1 for s in samples if s.reading is not None), len(samples)
