"""
Single-point air quality fetching with cache and stale fallback.

Order of operations for ``AirQualityFetcher.fetch``:

1. If ``use_cache``, return a live cache entry.
2. Ask the provider for the nearest station's feed.
3. Validate and normalize; on success cache and return it.
4. On any provider, validation or normalization failure, serve the expired cache entry if
   one exists, otherwise report the point as unavailable.

Provider failures never escape ``fetch``; they surface as a FetchResult with
status STALE or UNAVAILABLE. ConfigurationError (rejected token) does
propagate, since retrying cannot fix it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from .cache import BaseCache, MemoryCache, geo_cache_key
from .client import WAQIClient
from .exceptions import ProviderError
from .geo import BoundingBox
from .models import FetchResult, FetchStatus, StationReading
from .normalize import normalize
from .validation import validate

logger = logging.getLogger(__name__)


def _bounds_entry_to_payload(entry: Mapping[str, Any]) -> Dict[str, Any]:
    """Reshape a /map/bounds/ station entry into the feed payload layout."""
    aqi: Any = entry.get("aqi")
    if isinstance(aqi, str):
        try:
            aqi = float(aqi)
        except ValueError:
            pass  # left as-is, the validator reports it

    station = entry.get("station")
    station = station if isinstance(station, Mapping) else {}

    return {
        "aqi": aqi,
        "idx": entry.get("uid"),
        "city": {"geo": [entry.get("lat"), entry.get("lon")], "name": station.get("name")},
        "time": {"iso": station.get("time")},
    }


class AirQualityFetcher:
    """
    Fetches normalized readings for coordinates.

    Args:
        client: Provider client
        cache: Cache instance; a private MemoryCache is created if omitted
        ttl: Seconds a fresh reading stays live. Defaults to the client's config.
    """

    def __init__(
        self,
        client: WAQIClient,
        cache: Optional[BaseCache[StationReading]] = None,
        ttl: Optional[float] = None,
    ):
        self.client = client
        self.cache: BaseCache[StationReading] = cache if cache is not None else MemoryCache()
        self.ttl = ttl if ttl is not None else client.config.cache_ttl

    async def fetch(
        self, latitude: float, longitude: float, use_cache: bool = True
    ) -> FetchResult:
        """
        Fetch the reading for a coordinate.

        Args:
            latitude: Target latitude
            longitude: Target longitude
            use_cache: Return a live cache entry without calling the provider

        Returns:
            FetchResult with status FRESH, CACHED, STALE or UNAVAILABLE
        """
        key = geo_cache_key(latitude, longitude)

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {key}")
                return FetchResult(FetchStatus.CACHED, cached, age_seconds=self.cache.age(key))

        try:
            payload = await self.client.get_feed_by_geo(latitude, longitude)
        except ProviderError as e:
            logger.warning(f"Provider request failed for {key}: {e}")
            error = str(e)
        else:
            now = datetime.now(timezone.utc)
            try:
                reading = normalize(payload, now=now)
            except (ValueError, TypeError) as e:
                logger.error(f"Discarding malformed reading for {key}: {e}")
                return self._fallback(key, f"Malformed payload: {e}")

            if reading is not None:
                self.cache.put(key, reading, self.ttl)
                return FetchResult(FetchStatus.FRESH, reading, age_seconds=0.0)

            validation = validate(payload, now=now)
            logger.error(f"Discarding invalid reading for {key}: {validation.errors}")
            error = "; ".join(validation.errors) or "Invalid payload"

        return self._fallback(key, error)

    def _fallback(self, key: str, error: str) -> FetchResult:
        stale = self.cache.get_stale(key)
        if stale is not None:
            age = self.cache.age(key)
            logger.info(f"Serving stale data for {key} (age {age}s)")
            return FetchResult(FetchStatus.STALE, stale, error=error, age_seconds=age)

        return FetchResult(FetchStatus.UNAVAILABLE, None, error=error)

    async def fetch_reading(
        self, latitude: float, longitude: float, use_cache: bool = True
    ) -> Optional[StationReading]:
        """Fetch and return only the reading (fresh or stale), or None."""
        result = await self.fetch(latitude, longitude, use_cache=use_cache)
        return result.reading

    async def fetch_stations_in_bounds(self, bbox: BoundingBox) -> List[StationReading]:
        """
        Fetch readings for every station in a bounding box.

        Readings are the input for interpolation. Invalid entries are dropped,
        and a provider failure yields an empty list.
        """
        try:
            entries = await self.client.get_stations_in_bounds(bbox)
        except ProviderError as e:
            logger.warning(f"Station listing failed for bbox {bbox}: {e}")
            return []

        now = datetime.now(timezone.utc)
        readings = []
        skipped = 0
        for entry in entries:
            if not isinstance(entry, Mapping):
                skipped += 1
                continue
            try:
                reading = normalize(_bounds_entry_to_payload(entry), now=now)
            except (ValueError, TypeError) as e:
                logger.debug(f"Malformed station entry {entry.get('uid')}: {e}")
                reading = None
            if reading is None:
                skipped += 1
                continue
            readings.append(reading)

        if skipped:
            logger.warning(f"Skipped {skipped} invalid station entries in bbox {bbox}")
        return readings
