"""
Normalization of validated provider payloads into StationReading objects.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from .conversions import aqi_subindex_to_concentration
from .exceptions import ValidationError
from .models import Pollutant, StationReading, UpstreamPayload
from .validation import is_number, parse_timestamp, validate

logger = logging.getLogger(__name__)

POLLUTANT_FIELDS = [p.value for p in Pollutant if p is not Pollutant.PM25]


def _as_payload(payload: Union[Mapping[str, Any], UpstreamPayload]) -> UpstreamPayload:
    if isinstance(payload, UpstreamPayload):
        return payload
    return UpstreamPayload.from_json(payload)


def normalize(
    payload: Union[Mapping[str, Any], UpstreamPayload],
    now: Optional[datetime] = None,
) -> Optional[StationReading]:
    """
    Map a provider payload to a StationReading.

    Per-pollutant ``iaqi`` values are EPA sub-indices. PM2.5 and PM10 are
    converted to ug/m3; gases keep their sub-index and are tagged as such in
    ``StationReading.units``. When the payload has no PM2.5 entry it is
    derived from the composite AQI.

    Args:
        payload: Raw ``data`` mapping or UpstreamPayload
        now: Fetch time to stamp on the reading. Defaults to current UTC time.

    Returns:
        StationReading, or None if validation failed. The caller is
        responsible for logging the validation errors (see ``normalize_or_raise``).
    """
    if not isinstance(payload, (Mapping, UpstreamPayload)):
        return None

    data = _as_payload(payload)
    fetched_at = parse_timestamp(now) or datetime.now(timezone.utc)

    validation = validate(data, now=fetched_at)
    if not validation.is_valid():
        return None

    aqi = int(round(data.aqi))
    units: Dict[str, str] = {}

    raw_pm25 = data.iaqi.get(Pollutant.PM25.value)
    if is_number(raw_pm25):
        pm25 = aqi_subindex_to_concentration(Pollutant.PM25, raw_pm25)
    else:
        logger.debug(f"No PM2.5 sub-index in payload, deriving from AQI {aqi}")
        pm25 = aqi_subindex_to_concentration(Pollutant.PM25, aqi)
    units[Pollutant.PM25.value] = pm25.unit

    others: Dict[str, Optional[float]] = {}
    for name in POLLUTANT_FIELDS:
        raw = data.iaqi.get(name)
        if not is_number(raw):
            others[name] = None
            continue
        converted = aqi_subindex_to_concentration(name, raw)
        others[name] = converted.value
        units[name] = converted.unit

    latitude = longitude = None
    if data.geo is not None:
        latitude, longitude = float(data.geo[0]), float(data.geo[1])

    observed_at = parse_timestamp(data.time_iso) or fetched_at
    station_id = int(data.idx) if is_number(data.idx) and math.isfinite(data.idx) else None
    dominant = data.dominentpol if isinstance(data.dominentpol, str) and data.dominentpol else None

    return StationReading(
        aqi=aqi,
        pm25=pm25.value,
        pm10=others["pm10"],
        o3=others["o3"],
        no2=others["no2"],
        so2=others["so2"],
        co=others["co"],
        latitude=latitude,
        longitude=longitude,
        station_id=station_id,
        station_name=data.name if isinstance(data.name, str) and data.name else "Unknown",
        observed_at=observed_at,
        fetched_at=fetched_at,
        is_interpolated=False,
        dominant_pollutant=(dominant or Pollutant.PM25.value).lower(),
        units=units,
    )


def normalize_or_raise(
    payload: Union[Mapping[str, Any], UpstreamPayload],
    now: Optional[datetime] = None,
) -> StationReading:
    """
    Like ``normalize`` but raises ValidationError with the collected errors.
    """
    if not isinstance(payload, (Mapping, UpstreamPayload)):
        raise ValidationError(
            "Provider payload rejected", ["Invalid data structure: expected a JSON object"]
        )

    data = _as_payload(payload)
    validation = validate(data, now=now)
    if not validation.is_valid():
        raise ValidationError("Provider payload rejected", validation.errors)

    reading = normalize(data, now=now)
    if reading is None:
        raise ValidationError("Provider payload rejected", validation.errors)
    return reading
