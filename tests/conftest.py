"""
Shared fixtures for airrisk tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from airrisk.config import EngineConfig
from airrisk.models import StationReading

NOW = datetime(2024, 1, 15, 3, 30, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced epoch clock for cache tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Config with no request delay so tests do not sleep."""
    return EngineConfig(api_token="test-token", request_delay=0.0)


@pytest.fixture
def feed_payload():
    """A WAQI ``data`` object as returned by /feed/geo:lat;lng/."""
    return {
        "aqi": 87,
        "idx": 5773,
        "iaqi": {
            "pm25": {"v": 87},
            "pm10": {"v": 40},
            "o3": {"v": 12.4},
            "no2": {"v": 9.1},
        },
        "city": {"geo": [13.75, 100.5], "name": "Bangkok Pathumwan"},
        "time": {"iso": (NOW - timedelta(minutes=30)).isoformat()},
        "dominentpol": "pm25",
    }


def make_station(station_id, latitude, longitude, pm25, aqi=None):
    return StationReading(
        aqi=aqi if aqi is not None else int(pm25 * 2),
        pm25=pm25,
        latitude=latitude,
        longitude=longitude,
        station_id=station_id,
        station_name=f"Station {station_id}",
        observed_at=NOW,
        fetched_at=NOW,
    )


@pytest.fixture
def stations():
    """Two Bangkok stations with clearly different PM2.5 levels."""
    return [
        make_station(1, 13.70, 100.50, 20.0),
        make_station(2, 13.80, 100.60, 80.0),
    ]
