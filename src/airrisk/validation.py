"""
Validation of raw provider payloads.

Validation is a pure inspection: the payload is never modified. Problems that
make a reading unusable are errors; suspicious but usable values are warnings.
"""

import logging
import numbers
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Union

from .models import AQI_MAX, AQI_MIN, UpstreamPayload

logger = logging.getLogger(__name__)

PM25_PLAUSIBLE_RANGE = (0.0, 1000.0)
LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)
MAX_READING_AGE = timedelta(hours=2)


@dataclass
class ValidationResult:
    """Result of payload validation with warnings and errors."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add a validation error."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Add a validation warning."""
        self.warnings.append(warning)

    def is_valid(self) -> bool:
        """Check if the payload is valid (no errors)."""
        return len(self.errors) == 0

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    def __str__(self) -> str:
        parts = []
        if self.errors:
            parts.append(f"Errors: {len(self.errors)}")
        if self.warnings:
            parts.append(f"Warnings: {len(self.warnings)}")
        if not parts:
            parts.append("OK")
        return f"ValidationResult({', '.join(parts)})"


def is_number(value: Any) -> bool:
    """True for real numbers, excluding bools and NaN."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return value == value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp from the provider.

    Naive timestamps are assumed to be UTC. Returns None if unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate(
    payload: Union[Mapping[str, Any], UpstreamPayload],
    now: Optional[datetime] = None,
) -> ValidationResult:
    """
    Validate one provider ``data`` object.

    Args:
        payload: Raw JSON mapping or an already parsed UpstreamPayload
        now: Reference time for the staleness check. Defaults to current UTC time.

    Returns:
        ValidationResult; ``is_valid()`` is False when any error was found
    """
    result = ValidationResult()

    if isinstance(payload, UpstreamPayload):
        data = payload
    elif isinstance(payload, Mapping):
        data = UpstreamPayload.from_json(payload)
    else:
        result.add_error("Invalid data structure: expected a JSON object")
        return result

    if data.aqi is None:
        result.add_error("AQI value is required")
    elif not is_number(data.aqi):
        result.add_error(f"AQI value {data.aqi!r} is not numeric")
    elif not AQI_MIN <= data.aqi <= AQI_MAX:
        result.add_error(
            f"AQI value {data.aqi} is out of valid range [{AQI_MIN}, {AQI_MAX}]"
        )

    pm25 = data.iaqi.get("pm25")
    if is_number(pm25):
        low, high = PM25_PLAUSIBLE_RANGE
        if not low <= pm25 <= high:
            result.add_warning(f"PM2.5 value {pm25} is outside typical range [{low}, {high}]")

    if data.geo is not None:
        lat, lng = data.geo[0], data.geo[1]
        if not is_number(lat) or not LATITUDE_RANGE[0] <= lat <= LATITUDE_RANGE[1]:
            result.add_error(f"Latitude {lat!r} is invalid")
        if not is_number(lng) or not LONGITUDE_RANGE[0] <= lng <= LONGITUDE_RANGE[1]:
            result.add_error(f"Longitude {lng!r} is invalid")

    if data.time_iso is not None:
        observed = parse_timestamp(data.time_iso)
        if observed is None:
            result.add_warning(f"Invalid timestamp format: {data.time_iso!r}")
        else:
            reference = parse_timestamp(now) or datetime.now(timezone.utc)
            if reference - observed > MAX_READING_AGE:
                result.add_warning("Data is more than 2 hours old")

    if result.has_warnings():
        logger.warning(f"Payload validation warnings: {result.warnings}")

    return result
