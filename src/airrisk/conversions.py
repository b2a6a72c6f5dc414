"""
Conversions between AQI sub-indices and physical concentrations.

Uses the US EPA piecewise-linear breakpoint tables. Inside a bracket:

    conc = conc_low + (aqi - aqi_low) / (aqi_high - aqi_low) * (conc_high - conc_low)

Values beyond the table are clamped to the nearest bracket extreme instead of
raising, because providers do report values above the nominal range. The
result carries ``clamped=True`` in that case.

Only PM2.5 and PM10 have concentration tables here. Gaseous pollutants pass
through unchanged with ``unit="aqi_subindex"`` so they are never mistaken for
ug/m3.
"""

from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Union

from .models import UNIT_AQI_SUBINDEX, UNIT_UG_M3, Pollutant


class Breakpoint(NamedTuple):
    aqi_low: float
    aqi_high: float
    conc_low: float
    conc_high: float


PM25_BREAKPOINTS: List[Breakpoint] = [
    Breakpoint(0, 50, 0.0, 12.0),
    Breakpoint(51, 100, 12.1, 35.4),
    Breakpoint(101, 150, 35.5, 55.4),
    Breakpoint(151, 200, 55.5, 150.4),
    Breakpoint(201, 300, 150.5, 250.4),
    Breakpoint(301, 500, 250.5, 500.4),
]

PM10_BREAKPOINTS: List[Breakpoint] = [
    Breakpoint(0, 50, 0, 54),
    Breakpoint(51, 100, 55, 154),
    Breakpoint(101, 150, 155, 254),
    Breakpoint(151, 200, 255, 354),
    Breakpoint(201, 300, 355, 424),
    Breakpoint(301, 500, 425, 604),
]

BREAKPOINT_TABLES: Dict[Pollutant, List[Breakpoint]] = {
    Pollutant.PM25: PM25_BREAKPOINTS,
    Pollutant.PM10: PM10_BREAKPOINTS,
}

# (upper AQI bound, category)
AQI_CATEGORIES = [
    (50, "good"),
    (100, "moderate"),
    (150, "unhealthy_for_sensitive_groups"),
    (200, "unhealthy"),
    (300, "very_unhealthy"),
    (500, "hazardous"),
]


@dataclass(frozen=True)
class ConvertedValue:
    """A pollutant value together with the unit it is expressed in."""

    pollutant: Pollutant
    value: float
    unit: str
    clamped: bool = False

    @property
    def is_concentration(self) -> bool:
        return self.unit == UNIT_UG_M3


def _as_pollutant(pollutant: Union[str, Pollutant]) -> Pollutant:
    if isinstance(pollutant, Pollutant):
        return pollutant
    key = str(pollutant).lower().replace(".", "").replace("_", "")
    return Pollutant(key)


def has_concentration_table(pollutant: Union[str, Pollutant]) -> bool:
    return _as_pollutant(pollutant) in BREAKPOINT_TABLES


def aqi_subindex_to_concentration(
    pollutant: Union[str, Pollutant], aqi_value: float
) -> ConvertedValue:
    """
    Convert an AQI sub-index to a concentration in ug/m3.

    Args:
        pollutant: Pollutant code, e.g. 'pm25' or Pollutant.PM10
        aqi_value: Sub-index value

    Returns:
        ConvertedValue in ug/m3, or the untouched sub-index tagged
        'aqi_subindex' for pollutants without a table

    Examples:
        >>> aqi_subindex_to_concentration("pm25", 100).value
        35.4
    """
    pollutant = _as_pollutant(pollutant)
    table = BREAKPOINT_TABLES.get(pollutant)
    if table is None:
        return ConvertedValue(pollutant, float(aqi_value), UNIT_AQI_SUBINDEX)

    if aqi_value < table[0].aqi_low:
        return ConvertedValue(pollutant, float(table[0].conc_low), UNIT_UG_M3, True)
    if aqi_value > table[-1].aqi_high:
        return ConvertedValue(pollutant, float(table[-1].conc_high), UNIT_UG_M3, True)

    for bp in table:
        if aqi_value <= bp.aqi_high:
            # Between two integer brackets (e.g. 50.5) -> lower edge of this one
            if aqi_value < bp.aqi_low:
                return ConvertedValue(pollutant, float(bp.conc_low), UNIT_UG_M3)
            ratio = (aqi_value - bp.aqi_low) / (bp.aqi_high - bp.aqi_low)
            concentration = bp.conc_low + ratio * (bp.conc_high - bp.conc_low)
            return ConvertedValue(pollutant, round(concentration, 2), UNIT_UG_M3)

    # Unreachable: the range checks above cover the table
    raise AssertionError(f"No bracket found for {pollutant.value} AQI {aqi_value}")


def concentration_to_aqi(pollutant: Union[str, Pollutant], concentration: float) -> int:
    """
    Convert a concentration in ug/m3 to its AQI sub-index (EPA formula).

    Concentrations beyond the table clamp to 0 or 500.

    Raises:
        ValueError: If the pollutant has no concentration table
    """
    pollutant = _as_pollutant(pollutant)
    table = BREAKPOINT_TABLES.get(pollutant)
    if table is None:
        raise ValueError(f"No concentration breakpoints defined for {pollutant.value}")

    if concentration <= table[0].conc_low:
        return int(table[0].aqi_low)
    if concentration >= table[-1].conc_high:
        return int(table[-1].aqi_high)

    for bp in table:
        if concentration <= bp.conc_high:
            if concentration < bp.conc_low:
                return int(bp.aqi_low)
            ratio = (concentration - bp.conc_low) / (bp.conc_high - bp.conc_low)
            return int(round(bp.aqi_low + ratio * (bp.aqi_high - bp.aqi_low)))

    raise AssertionError(f"No bracket found for {pollutant.value} concentration {concentration}")


def aqi_category(aqi: float) -> str:
    """EPA category name for a composite AQI value."""
    for upper, name in AQI_CATEGORIES:
        if aqi <= upper:
            return name
    return AQI_CATEGORIES[-1][1]
