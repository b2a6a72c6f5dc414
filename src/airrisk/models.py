"""
Data models for station readings, exposure profiles and route analysis.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

if TYPE_CHECKING:
    import pandas as pd

T = TypeVar("T")

Coordinate = Tuple[float, float]  # (latitude, longitude)

UNIT_UG_M3 = "ug/m3"
UNIT_AQI_SUBINDEX = "aqi_subindex"

AQI_MIN = 0
AQI_MAX = 500


class Pollutant(str, Enum):
    PM25 = "pm25"
    PM10 = "pm10"
    O3 = "o3"
    NO2 = "no2"
    SO2 = "so2"
    CO = "co"


class ActivityLevel(str, Enum):
    REST = "rest"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class TravelMode(str, Enum):
    METRO = "metro"
    CAR = "car"
    BUS = "bus"
    MOTORCYCLE = "motorcycle"
    CYCLING = "cycling"
    WALKING = "walking"


class Disease(str, Enum):
    ASTHMA = "asthma"
    COPD = "copd"
    CARDIOVASCULAR = "cardiovascular"
    DIABETES = "diabetes"
    ELDERLY = "elderly"
    CHILD = "child"
    PREGNANT = "pregnant"
    IMMUNOCOMPROMISED = "immunocompromised"
    GENERAL = "general"


class SmokingStatus(str, Enum):
    NEVER = "never"
    FORMER = "former"
    CURRENT = "current"


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"


class FetchStatus(str, Enum):
    FRESH = "fresh"  # fetched from the provider just now
    CACHED = "cached"  # served from a non-expired cache entry
    STALE = "stale"  # provider failed, expired entry served
    UNAVAILABLE = "unavailable"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_valid_latitude(value: Optional[float]) -> bool:
    return value is None or -90.0 <= value <= 90.0


def _is_valid_longitude(value: Optional[float]) -> bool:
    return value is None or -180.0 <= value <= 180.0


@dataclass(frozen=True)
class StationReading:
    """
    One normalized pollutant observation from a monitoring station.

    Readings are immutable. A fresher observation produces a new instance with
    a later ``fetched_at`` rather than updating an existing one.

    Attributes:
        aqi: Composite AQI in [0, 500]
        pm25: Fine particulate concentration in ug/m3 (never negative)
        pm10, o3, no2, so2, co: Other pollutants, unit given by ``units``
        latitude, longitude: WGS84 degrees, if the provider reported them
        station_id: Provider station identifier
        station_name: Human readable station name
        observed_at: When the station measured the values
        fetched_at: When this process received them
        is_interpolated: Always False for directly normalized readings
        dominant_pollutant: Pollutant driving the composite AQI
        units: Unit tag per present pollutant ("ug/m3" or "aqi_subindex")
    """

    aqi: int
    pm25: float
    pm10: Optional[float] = None
    o3: Optional[float] = None
    no2: Optional[float] = None
    so2: Optional[float] = None
    co: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    station_id: Optional[int] = None
    station_name: str = "Unknown"
    observed_at: datetime = field(default_factory=_utcnow)
    fetched_at: datetime = field(default_factory=_utcnow)
    is_interpolated: bool = False
    dominant_pollutant: str = Pollutant.PM25.value
    units: Dict[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not AQI_MIN <= self.aqi <= AQI_MAX:
            raise ValueError(f"AQI {self.aqi} outside [{AQI_MIN}, {AQI_MAX}]")
        if self.pm25 < 0:
            raise ValueError(f"PM2.5 cannot be negative, got {self.pm25}")
        if not _is_valid_latitude(self.latitude):
            raise ValueError(f"Latitude {self.latitude} outside [-90, 90]")
        if not _is_valid_longitude(self.longitude):
            raise ValueError(f"Longitude {self.longitude} outside [-180, 180]")

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def supersedes(self, other: "StationReading") -> bool:
        """True if this reading was fetched after ``other``."""
        return self.fetched_at > other.fetched_at

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data representation suitable for JSON storage."""
        data = asdict(self)
        data["observed_at"] = self.observed_at.isoformat()
        data["fetched_at"] = self.fetched_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StationReading":
        values = dict(data)
        for key in ("observed_at", "fetched_at"):
            if isinstance(values.get(key), str):
                values[key] = datetime.fromisoformat(values[key])
        values["units"] = dict(values.get("units") or {})
        return cls(**values)


@dataclass(frozen=True)
class ContributingStation:
    """A station that took part in an interpolation, with its normalized weight."""

    station_id: Optional[int]
    weight: float
    distance_km: float


@dataclass(frozen=True)
class InterpolatedPoint:
    """
    Estimated values at a coordinate with no co-located station.

    A point always has at least one contributing station; when nothing is in
    range the interpolator returns None instead of an empty point.
    """

    latitude: float
    longitude: float
    pm25: float
    aqi: float
    confidence: float
    contributing_stations: List[ContributingStation] = field(hash=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence {self.confidence} outside [0, 1]")
        if not self.contributing_stations:
            raise ValueError("An interpolated point needs at least one contributing station")

    @property
    def is_interpolated(self) -> bool:
        return True


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its write time and expiry (epoch seconds)."""

    data: T
    observed_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def age(self, now: float) -> float:
        return max(0.0, now - self.observed_at)


@dataclass
class UpstreamPayload:
    """
    Loosely typed view of one provider ``data`` object.

    Fields keep whatever the provider sent (no coercion beyond flattening), so
    the validator can still see and report bad values.
    """

    aqi: Any = None
    iaqi: Dict[str, Any] = field(default_factory=dict)
    geo: Optional[List[Any]] = None
    time_iso: Any = None
    idx: Any = None
    name: Optional[str] = None
    dominentpol: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "UpstreamPayload":
        """
        Build a payload from the provider JSON.

        Example input::

            {"aqi": 87, "idx": 5773,
             "iaqi": {"pm25": {"v": 87}, "o3": {"v": 12.4}},
             "city": {"geo": [13.75, 100.5], "name": "Bangkok"},
             "time": {"iso": "2024-01-15T10:00:00+07:00"},
             "dominentpol": "pm25"}
        """
        iaqi: Dict[str, Any] = {}
        raw_iaqi = data.get("iaqi")
        if isinstance(raw_iaqi, Mapping):
            for pollutant, entry in raw_iaqi.items():
                if isinstance(entry, Mapping):
                    iaqi[str(pollutant).lower()] = entry.get("v")

        city = data.get("city")
        geo = None
        name = None
        if isinstance(city, Mapping):
            raw_geo = city.get("geo")
            if isinstance(raw_geo, (list, tuple)) and len(raw_geo) >= 2:
                geo = list(raw_geo[:2])
            name = city.get("name")

        time_info = data.get("time")
        time_iso = time_info.get("iso") if isinstance(time_info, Mapping) else None

        return cls(
            aqi=data.get("aqi"),
            iaqi=iaqi,
            geo=geo,
            time_iso=time_iso,
            idx=data.get("idx"),
            name=name,
            dominentpol=data.get("dominentpol"),
        )


def _coerce_enum(enum_cls: Any, value: Any) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"Unknown {enum_cls.__name__} {value!r}; expected one of: {valid}") from None


@dataclass(frozen=True)
class ExposureProfile:
    """Inputs describing one exposure episode."""

    pm25: float
    duration_minutes: float
    activity_level: ActivityLevel = ActivityLevel.LIGHT
    is_outdoor: bool = True
    has_mask: bool = False
    travel_mode: TravelMode = TravelMode.WALKING

    def __post_init__(self) -> None:
        if self.pm25 is None or math.isnan(self.pm25) or self.pm25 < 0:
            raise ValueError(f"pm25 must be a non-negative number, got {self.pm25}")
        duration = self.duration_minutes
        if duration is None or math.isnan(duration) or duration < 0:
            raise ValueError(
                f"duration_minutes must be a non-negative number, got {duration}"
            )
        object.__setattr__(
            self, "activity_level", _coerce_enum(ActivityLevel, self.activity_level)
        )
        object.__setattr__(self, "travel_mode", _coerce_enum(TravelMode, self.travel_mode))


@dataclass(frozen=True)
class PersonProfile:
    """Personal factors that change sensitivity to fine particulates."""

    age: int = 30
    diseases: FrozenSet[Disease] = frozenset()
    smoking_status: SmokingStatus = SmokingStatus.NEVER

    def __post_init__(self) -> None:
        if self.age < 0:
            raise ValueError(f"age cannot be negative, got {self.age}")
        object.__setattr__(
            self,
            "diseases",
            frozenset(_coerce_enum(Disease, d) for d in (self.diseases or ())),
        )
        object.__setattr__(
            self, "smoking_status", _coerce_enum(SmokingStatus, self.smoking_status)
        )


@dataclass(frozen=True)
class PHRIResult:
    """Personal Health Risk Index result."""

    score: float  # 0-100
    level: RiskLevel
    normalized_score: float  # 0-10, for compact displays
    breakdown: Dict[str, float] = field(default_factory=dict, hash=False)
    dominant_factors: List[str] = field(default_factory=list, hash=False)


SampleValue = Union[StationReading, InterpolatedPoint]


@dataclass(frozen=True)
class RouteSample:
    """A sampled point along a route and the air quality found there."""

    latitude: float
    longitude: float
    reading: Optional[SampleValue] = None

    @property
    def pm25(self) -> Optional[float]:
        return self.reading.pm25 if self.reading is not None else None

    @property
    def source(self) -> Optional[str]:
        if self.reading is None:
            return None
        return "interpolated" if self.reading.is_interpolated else "station"


@dataclass
class RouteCandidate:
    """
    One alternative route from the directions provider.

    ``average_pm25`` and ``max_pm25`` are derived from ``samples`` on every
    access. Samples without data are left out; a route with no data at all
    reports None for both.
    """

    geometry: List[Coordinate]
    distance_meters: float
    duration_seconds: float
    samples: List[RouteSample] = field(default_factory=list)

    def _sample_values(self) -> List[float]:
        return [s.pm25 for s in self.samples if s.pm25 is not None]

    @property
    def average_pm25(self) -> Optional[float]:
        values = self._sample_values()
        if not values:
            return None
        return sum(values) / len(values)

    @property
    def max_pm25(self) -> Optional[float]:
        values = self._sample_values()
        return max(values) if values else None

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60.0

    @property
    def has_data(self) -> bool:
        return bool(self._sample_values())


@dataclass(frozen=True)
class SegmentRisk:
    """Risk at one route sample, scored over that sample's share of the trip time."""

    latitude: float
    longitude: float
    pm25: Optional[float]
    phri: Optional[PHRIResult] = None

    @property
    def location(self) -> Coordinate:
        return (self.latitude, self.longitude)

    @property
    def score(self) -> Optional[float]:
        return self.phri.score if self.phri is not None else None

    @property
    def level(self) -> Optional[RiskLevel]:
        return self.phri.level if self.phri is not None else None


@dataclass
class RouteAnalysis:
    """
    Risk assessment of one route inside a ranking.

    ``coverage`` is the share of samples that carry data and
    ``data_quality`` its label (high, medium, low or none). ``peak_phri`` and
    ``peak_location`` come from the highest scoring entry in ``segment_risks``.
    """

    index: int
    route: RouteCandidate
    phri: Optional[PHRIResult]
    is_safest: bool = False
    is_fastest: bool = False
    health_reason: str = ""
    tradeoff: str = ""
    segment_risks: List[SegmentRisk] = field(default_factory=list)
    peak_phri: Optional[float] = None
    peak_location: Optional[Coordinate] = None
    coverage: float = 0.0
    data_quality: str = "none"

    @property
    def average_pm25(self) -> Optional[float]:
        return self.route.average_pm25

    @property
    def score(self) -> Optional[float]:
        return self.phri.score if self.phri is not None else None


@dataclass
class RouteRanking:
    """Ranked routes with the safest/fastest picks and the trade-off summary."""

    analyses: List[RouteAnalysis]
    safest_index: Optional[int]
    fastest_index: Optional[int]
    order: List[int]
    tradeoff_message: str

    @property
    def ranked(self) -> List[RouteAnalysis]:
        """Analyses in ranked order, safest first."""
        return [self.analyses[i] for i in self.order]

    def to_dict(self) -> List[Dict[str, Any]]:
        rows = []
        for rank, analysis in enumerate(self.ranked, start=1):
            route = analysis.route
            rows.append(
                {
                    "rank": rank,
                    "route_index": analysis.index,
                    "phri": analysis.score,
                    "risk_level": analysis.phri.level.value if analysis.phri else None,
                    "average_pm25": route.average_pm25,
                    "max_pm25": route.max_pm25,
                    "duration_minutes": route.duration_minutes,
                    "distance_km": route.distance_meters / 1000.0,
                    "samples": len(route.samples),
                    "coverage": analysis.coverage,
                    "data_quality": analysis.data_quality,
                    "peak_phri": analysis.peak_phri,
                    "is_safest": analysis.is_safest,
                    "is_fastest": analysis.is_fastest,
                    "health_reason": analysis.health_reason,
                    "tradeoff": analysis.tradeoff,
                }
            )
        return rows

    def to_pandas(self) -> "pd.DataFrame":
        """Convert the ranking to a pandas DataFrame, one row per route."""
        try:
            import pandas as pd
        except ImportError:
            raise ImportError(
                "pandas is required for DataFrame conversion. Install with: pip install pandas"
            ) from None

        return pd.DataFrame(self.to_dict())


@dataclass
class FetchResult:
    """Outcome of a single-point fetch: the reading plus where it came from."""

    status: FetchStatus
    reading: Optional[StationReading] = None
    error: Optional[str] = None
    age_seconds: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.reading is not None

    @property
    def is_stale(self) -> bool:
        return self.status is FetchStatus.STALE


def readings_to_pandas(readings: Iterable[StationReading]) -> "pd.DataFrame":
    """Tabulate station readings, one row per reading."""
    try:
        import pandas as pd
    except ImportError:
        raise ImportError(
            "pandas is required for DataFrame conversion. Install with: pip install pandas"
        ) from None

    rows = []
    for reading in readings:
        row = reading.to_dict()
        row.pop("units", None)
        rows.append(row)

    df = pd.DataFrame(rows)
    if not df.empty:
        for column in ("observed_at", "fetched_at"):
            df[column] = pd.to_datetime(df[column], errors="coerce", utc=True)
    return df


@dataclass(frozen=True)
class DirectionsRoute:
    """One alternative route as delivered by a directions provider."""

    geometry: List[Coordinate]
    distance_meters: float
    duration_seconds: float

    @classmethod
    def from_geojson(cls, route: Mapping[str, Any]) -> "DirectionsRoute":
        """
        Build from a Mapbox/OSRM style route object.

        Example input::

            {"geometry": {"type": "LineString",
                          "coordinates": [[100.50, 13.70], [100.55, 13.75]]},
             "distance": 7300.0, "duration": 1200.0}
        """
        geometry = route.get("geometry") or {}
        coordinates = geometry.get("coordinates") if isinstance(geometry, Mapping) else None
        if not coordinates:
            raise ValueError("Route has no LineString coordinates")
        return cls(
            geometry=[(float(c[1]), float(c[0])) for c in coordinates],
            distance_meters=float(route.get("distance", 0.0)),
            duration_seconds=float(route.get("duration", 0.0)),
        )
