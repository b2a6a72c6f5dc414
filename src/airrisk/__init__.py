"""
Air pollution exposure and personal health risk engine.

Fetch station readings, interpolate between stations, sample routes and rank
them by a Personal Health Risk Index.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .cache import BaseCache, MemoryCache, SQLiteCache, geo_cache_key
from .client import WAQIClient
from .config import EngineConfig
from .conversions import (
    aqi_category,
    aqi_subindex_to_concentration,
    concentration_to_aqi,
)
from .convenience import analyze_routes, get_air_quality, get_route_exposure
from .exceptions import (
    AirRiskError,
    ConfigurationError,
    InterpolationUnavailable,
    ProviderConnectionError,
    ProviderError,
    ProviderResponseError,
    ProviderTimeoutError,
    ValidationError,
)
from .fetcher import AirQualityFetcher
from .geo import haversine_distance
from .interpolation import interpolate, interpolate_grid, interpolate_or_raise
from .models import (
    ActivityLevel,
    ContributingStation,
    DirectionsRoute,
    Disease,
    ExposureProfile,
    FetchResult,
    FetchStatus,
    InterpolatedPoint,
    PersonProfile,
    PHRIResult,
    Pollutant,
    RiskLevel,
    RouteAnalysis,
    RouteCandidate,
    RouteRanking,
    RouteSample,
    SegmentRisk,
    SmokingStatus,
    StationReading,
    TravelMode,
    readings_to_pandas,
)
from .normalize import normalize, normalize_or_raise
from .ranking import rank_routes
from .risk import compute_phri, recommendations, risk_level
from .routes import RouteSampler, sample_route
from .sync import analyze_routes_sync, get_air_quality_sync, get_route_exposure_sync
from .validation import ValidationResult, validate

__all__ = [
    # Configuration
    "EngineConfig",
    # Provider access
    "WAQIClient",
    "AirQualityFetcher",
    # Caching
    "BaseCache",
    "MemoryCache",
    "SQLiteCache",
    "geo_cache_key",
    # Validation and normalization
    "ValidationResult",
    "validate",
    "normalize",
    "normalize_or_raise",
    "aqi_subindex_to_concentration",
    "concentration_to_aqi",
    "aqi_category",
    # Spatial
    "haversine_distance",
    "interpolate",
    "interpolate_or_raise",
    "interpolate_grid",
    "sample_route",
    "RouteSampler",
    # Risk and ranking
    "compute_phri",
    "risk_level",
    "recommendations",
    "rank_routes",
    # Convenience functions
    "get_air_quality",
    "get_route_exposure",
    "analyze_routes",
    "get_air_quality_sync",
    "get_route_exposure_sync",
    "analyze_routes_sync",
    "readings_to_pandas",
    # Models
    "Pollutant",
    "ActivityLevel",
    "TravelMode",
    "Disease",
    "SmokingStatus",
    "RiskLevel",
    "FetchStatus",
    "StationReading",
    "ContributingStation",
    "InterpolatedPoint",
    "ExposureProfile",
    "PersonProfile",
    "PHRIResult",
    "RouteSample",
    "RouteCandidate",
    "RouteAnalysis",
    "SegmentRisk",
    "RouteRanking",
    "DirectionsRoute",
    "FetchResult",
    # Exceptions
    "AirRiskError",
    "ValidationError",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderResponseError",
    "InterpolationUnavailable",
    "ConfigurationError",
]
