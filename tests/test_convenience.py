"""
Tests for the convenience functions and their synchronous versions.
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from airrisk.cache import MemoryCache
from airrisk.convenience import (
    _padded_bbox,
    analyze_routes,
    get_air_quality,
    get_route_exposure,
)
from airrisk.exceptions import ProviderConnectionError
from airrisk.models import DirectionsRoute, FetchStatus
from airrisk.sync import AsyncSyncBridge, analyze_routes_sync, get_air_quality_sync


def geojson_route(coordinates, distance, duration):
    return {
        "geometry": {"type": "LineString", "coordinates": coordinates},
        "distance": distance,
        "duration": duration,
    }


def feed_for_pm25(subindex):
    return {"aqi": subindex, "idx": 1, "iaqi": {"pm25": {"v": subindex}}}


@pytest.fixture
def client(config):
    client = Mock()
    client.config = config
    client.get_feed_by_geo = AsyncMock()
    client.get_stations_in_bounds = AsyncMock(return_value=[])
    return client


class TestDirectionsRoute:
    def test_from_geojson(self):
        route = DirectionsRoute.from_geojson(
            geojson_route([[100.50, 13.70], [100.55, 13.75]], 7300, 1200)
        )
        assert route.geometry == [(13.70, 100.50), (13.75, 100.55)]
        assert route.distance_meters == 7300.0
        assert route.duration_seconds == 1200.0

    def test_missing_geometry(self):
        with pytest.raises(ValueError):
            DirectionsRoute.from_geojson({"distance": 10, "duration": 5})


class TestGetAirQuality:
    @pytest.mark.asyncio
    async def test_with_client(self, client, feed_payload):
        client.get_feed_by_geo.return_value = feed_payload
        result = await get_air_quality(13.75, 100.5, client=client)
        assert result.status is FetchStatus.FRESH
        assert result.reading.aqi == 87

    @pytest.mark.asyncio
    async def test_shared_cache(self, client, feed_payload):
        client.get_feed_by_geo.return_value = feed_payload
        cache = MemoryCache()
        await get_air_quality(13.75, 100.5, cache=cache, client=client)
        result = await get_air_quality(13.75, 100.5, cache=cache, client=client)
        assert result.status is FetchStatus.CACHED

    @patch("airrisk.convenience.WAQIClient")
    @pytest.mark.asyncio
    async def test_creates_and_closes_client(self, mock_client_class, client, config, feed_payload):
        client.get_feed_by_geo.return_value = feed_payload
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=None)
        mock_client_class.return_value = client

        result = await get_air_quality(13.75, 100.5, config=config)

        assert result.ok
        mock_client_class.assert_called_once_with(config)
        client.__aexit__.assert_awaited_once()

    def test_sync_attribute(self):
        assert callable(get_air_quality.sync)
        assert get_air_quality.sync.__name__ == "get_air_quality_sync"


class TestGetRouteExposure:
    @pytest.mark.asyncio
    async def test_samples_route(self, client):
        client.get_feed_by_geo.return_value = feed_for_pm25(50)
        coords = [(13.70 + i * 0.01, 100.5) for i in range(10)]

        candidate = await get_route_exposure(coords, 10000, 1200, client=client)

        assert len(candidate.samples) == 6
        assert candidate.average_pm25 == 12.0
        assert candidate.distance_meters == 10000

    @pytest.mark.asyncio
    async def test_provider_down_yields_no_data(self, client):
        client.get_feed_by_geo.side_effect = ProviderConnectionError("down")
        coords = [(13.70, 100.5), (13.72, 100.5)]

        candidate = await get_route_exposure(coords, 2200, 300, client=client)

        assert candidate.average_pm25 is None
        assert all(s.reading is None for s in candidate.samples)


class TestAnalyzeRoutes:
    """Test analyze_routes end to end with a mocked provider."""

    @pytest.mark.asyncio
    async def test_ranks_routes(self, client):
        # Route 1 runs along longitude 100.50, route 2 along 100.60
        async def feed(latitude, longitude):
            return feed_for_pm25(50) if longitude < 100.55 else feed_for_pm25(150)

        client.get_feed_by_geo.side_effect = feed
        routes = [
            geojson_route([[100.50, 13.70], [100.50, 13.72], [100.50, 13.74]], 4400, 1200),
            DirectionsRoute([(13.70, 100.60), (13.72, 100.60), (13.74, 100.60)], 4400, 720),
        ]

        ranking = await analyze_routes(routes, client=client)

        assert ranking.safest_index == 0
        assert ranking.fastest_index == 1
        assert "takes 8 extra minutes" in ranking.tradeoff_message

    @pytest.mark.asyncio
    async def test_interpolates_missing_points(self, client):
        client.get_feed_by_geo.side_effect = ProviderConnectionError("down")
        client.get_stations_in_bounds.return_value = [
            {"lat": 13.71, "lon": 100.51, "uid": 7, "aqi": "80", "station": {"name": "A"}},
        ]
        routes = [geojson_route([[100.50, 13.70], [100.50, 13.72]], 2200, 600)]

        ranking = await analyze_routes(routes, interpolate_missing=True, client=client)

        client.get_stations_in_bounds.assert_awaited_once()
        route = ranking.analyses[0].route
        assert route.has_data
        assert all(s.source == "interpolated" for s in route.samples)
        assert ranking.safest_index == 0

    @pytest.mark.asyncio
    async def test_requires_routes(self, client):
        with pytest.raises(ValueError):
            await analyze_routes([], client=client)

    @pytest.mark.asyncio
    async def test_cancel(self, client):
        cancel_event = asyncio.Event()
        cancel_event.set()
        routes = [geojson_route([[100.50, 13.70], [100.50, 13.72]], 2200, 600)]

        with pytest.raises(asyncio.CancelledError):
            await analyze_routes(routes, cancel_event=cancel_event, client=client)

    def test_padded_bbox(self):
        routes = [DirectionsRoute([(13.7, 100.5), (13.8, 100.6)], 1, 1)]
        assert _padded_bbox(routes, 0.25) == pytest.approx((13.45, 100.25, 14.05, 100.85))
        assert _padded_bbox([], 0.25) is None


class TestSyncVersions:
    def test_get_air_quality_sync(self, client, feed_payload):
        client.get_feed_by_geo.return_value = feed_payload
        result = get_air_quality_sync(13.75, 100.5, client=client)
        assert result.reading.station_id == 5773

    def test_sync_attribute_runs(self, client, feed_payload):
        client.get_feed_by_geo.return_value = feed_payload
        assert get_air_quality.sync(13.75, 100.5, client=client).ok

    def test_analyze_routes_sync(self, client):
        client.get_feed_by_geo.return_value = feed_for_pm25(50)
        routes = [geojson_route([[100.50, 13.70], [100.50, 13.72]], 2200, 600)]
        ranking = analyze_routes_sync(routes, client=client)
        assert ranking.safest_index == 0

    @pytest.mark.asyncio
    async def test_bridge_refuses_running_loop(self):
        async def noop():
            return None

        with pytest.raises(RuntimeError, match="existing asyncio event loop"):
            AsyncSyncBridge.run_async(noop)
