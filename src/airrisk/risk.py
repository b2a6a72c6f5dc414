"""
Personal Health Risk Index (PHRI).

``compute_phri`` is a pure function of an ExposureProfile and a PersonProfile:

    effective_pm25 = pm25 * travel_mode * indoor * (1 - mask_mitigation)
    dose           = effective_pm25 * (duration_minutes / 60) * activity
    hazard         = dose * disease * age * smoking
    score          = 100 * (1 - exp(-hazard / HAZARD_SCALE))

The saturating last step keeps the score inside [0, 100] while staying
monotonic in every exposure input, so more exposure never lowers the score
and protection always lowers it until the score saturates.

Every multiplier below is a calibration parameter, not a clinical constant.
"""

from math import exp
from typing import Dict, Iterable, List, Tuple

from .models import (
    ActivityLevel,
    Disease,
    ExposureProfile,
    PersonProfile,
    PHRIResult,
    RiskLevel,
    SmokingStatus,
    TravelMode,
)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Hazard at which the score reaches 1 - 1/e (~63)
HAZARD_SCALE = 300.0

# Upper bounds (exclusive) of each level; anything at or above the last is SEVERE
RISK_THRESHOLDS: List[Tuple[float, RiskLevel]] = [
    (25.0, RiskLevel.LOW),
    (50.0, RiskLevel.MODERATE),
    (75.0, RiskLevel.HIGH),
]

# Relative minute ventilation
ACTIVITY_MULTIPLIERS: Dict[ActivityLevel, float] = {
    ActivityLevel.REST: 1.0,
    ActivityLevel.LIGHT: 1.5,
    ActivityLevel.MODERATE: 2.0,
    ActivityLevel.HEAVY: 3.0,
}

# Fraction of PM2.5 removed by an N95-class mask
MASK_MITIGATION = 0.8

# Share of outdoor PM2.5 reaching indoor air
INDOOR_EXPOSURE_FACTOR = 0.3

# Exposure relative to walking along the same road
TRAVEL_MODE_MODIFIERS: Dict[TravelMode, float] = {
    TravelMode.METRO: 0.4,
    TravelMode.CAR: 0.5,
    TravelMode.BUS: 0.7,
    TravelMode.MOTORCYCLE: 0.9,
    TravelMode.CYCLING: 0.9,
    TravelMode.WALKING: 1.0,
}

DISEASE_SENSITIVITY: Dict[Disease, float] = {
    Disease.ASTHMA: 1.8,
    Disease.COPD: 2.0,
    Disease.CARDIOVASCULAR: 1.5,
    Disease.DIABETES: 1.3,
    Disease.ELDERLY: 1.6,
    Disease.CHILD: 1.4,
    Disease.PREGNANT: 1.4,
    Disease.IMMUNOCOMPROMISED: 1.7,
    Disease.GENERAL: 1.0,
}
# Share of each additional condition's excess sensitivity that is added on top
# of the strongest one
SECONDARY_DISEASE_SHARE = 0.3
MAX_DISEASE_FACTOR = 3.0

ELDERLY_AGE = 65

# (max age inclusive, factor); ages above the last bound use 1.0
AGE_FACTORS: List[Tuple[int, float]] = [
    (5, 1.5),
    (12, 1.3),
    (18, 1.1),
]

SMOKING_FACTORS: Dict[SmokingStatus, float] = {
    SmokingStatus.NEVER: 1.0,
    SmokingStatus.FORMER: 1.1,
    SmokingStatus.CURRENT: 1.3,
}


def risk_level(score: float) -> RiskLevel:
    """Map a PHRI score to its level."""
    for upper, level in RISK_THRESHOLDS:
        if score < upper:
            return level
    return RiskLevel.SEVERE


def travel_mode_modifier(mode: TravelMode) -> float:
    return TRAVEL_MODE_MODIFIERS[TravelMode(mode)]


def effective_pm25(exposure: ExposureProfile) -> float:
    """PM2.5 actually inhaled per unit of ventilation, in ug/m3."""
    value = exposure.pm25 * travel_mode_modifier(exposure.travel_mode)
    if not exposure.is_outdoor:
        value *= INDOOR_EXPOSURE_FACTOR
    if exposure.has_mask:
        value *= 1.0 - MASK_MITIGATION
    return value


def disease_factor(diseases: Iterable[Disease], age: int = 0) -> float:
    """
    Combined sensitivity of a set of conditions.

    The strongest condition applies fully and every further one adds
    SECONDARY_DISEASE_SHARE of its excess over 1.0, capped at
    MAX_DISEASE_FACTOR. Ages of ELDERLY_AGE and above count as ``elderly``.
    """
    tags = set(diseases)
    if age >= ELDERLY_AGE:
        tags.add(Disease.ELDERLY)
    tags.discard(Disease.GENERAL)
    if not tags:
        return 1.0

    coefficients = sorted((DISEASE_SENSITIVITY[d] for d in tags), reverse=True)
    factor = coefficients[0] + sum(
        (c - 1.0) * SECONDARY_DISEASE_SHARE for c in coefficients[1:]
    )
    return min(factor, MAX_DISEASE_FACTOR)


def age_factor(age: int) -> float:
    for upper, factor in AGE_FACTORS:
        if age <= upper:
            return factor
    return 1.0


def _dominant_factors(
    exposure: ExposureProfile, breakdown: Dict[str, float]
) -> List[str]:
    factors = []
    if exposure.pm25 > 37.5:
        factors.append("high PM2.5 concentration")
    if exposure.duration_minutes > 120:
        factors.append("long exposure duration")
    if breakdown["activity_factor"] >= ACTIVITY_MULTIPLIERS[ActivityLevel.MODERATE]:
        factors.append("elevated breathing rate")
    if breakdown["disease_factor"] > 1.3:
        factors.append("pre-existing health conditions")
    if exposure.is_outdoor and not exposure.has_mask:
        factors.append("no mask protection")
    return factors[:3]


def compute_phri(exposure: ExposureProfile, person: PersonProfile) -> PHRIResult:
    """
    Compute the Personal Health Risk Index.

    Args:
        exposure: Concentration, duration, activity, setting, mask and travel mode
        person: Age, conditions and smoking status

    Returns:
        PHRIResult with score in [0, 100] (one decimal), level and breakdown

    Examples:
        >>> result = compute_phri(
        ...     ExposureProfile(pm25=150, duration_minutes=60, activity_level="heavy"),
        ...     PersonProfile(diseases={"asthma"}),
        ... )
        >>> result.level
        <RiskLevel.SEVERE: 'severe'>
    """
    effective = effective_pm25(exposure)
    duration_hours = exposure.duration_minutes / 60.0
    activity = ACTIVITY_MULTIPLIERS[exposure.activity_level]
    dose = effective * duration_hours * activity

    diseases = disease_factor(person.diseases, person.age)
    age = age_factor(person.age)
    smoking = SMOKING_FACTORS[person.smoking_status]
    sensitivity = diseases * age * smoking

    hazard = dose * sensitivity
    raw_score = SCORE_MAX * (1.0 - exp(-hazard / HAZARD_SCALE))
    score = round(min(max(raw_score, SCORE_MIN), SCORE_MAX), 1)

    breakdown = {
        "effective_pm25": round(effective, 2),
        "duration_hours": round(duration_hours, 3),
        "activity_factor": activity,
        "travel_mode_factor": travel_mode_modifier(exposure.travel_mode),
        "protection_factor": round(1.0 - MASK_MITIGATION, 2) if exposure.has_mask else 1.0,
        "indoor_factor": 1.0 if exposure.is_outdoor else INDOOR_EXPOSURE_FACTOR,
        "disease_factor": round(diseases, 3),
        "age_factor": age,
        "smoking_factor": smoking,
        "hazard": round(hazard, 3),
    }

    return PHRIResult(
        score=score,
        level=risk_level(score),
        normalized_score=round(score / 10.0, 1),
        breakdown=breakdown,
        dominant_factors=_dominant_factors(exposure, breakdown),
    )


def recommendations(result: PHRIResult, exposure: ExposureProfile) -> List[str]:
    """Short, actionable advice for a PHRI result."""
    advice: List[str] = []
    if result.level is RiskLevel.SEVERE:
        advice.append("Avoid all outdoor activity")
        advice.append("Run an air purifier indoors")
        if not exposure.has_mask:
            advice.append("Wear an N95 mask if you must go outside")
    elif result.level is RiskLevel.HIGH:
        advice.append("Reduce time spent outdoors")
        if not exposure.has_mask:
            advice.append("Wear a mask")
        if exposure.travel_mode in (TravelMode.WALKING, TravelMode.CYCLING):
            advice.append("Consider enclosed transit such as the metro instead")
    elif result.level is RiskLevel.MODERATE:
        advice.append("Watch for symptoms such as coughing or shortness of breath")
        if exposure.activity_level is ActivityLevel.HEAVY:
            advice.append("Lower the intensity of outdoor exercise")
    else:
        advice.append("Air quality risk is low")
        advice.append("Normal outdoor activity is fine")
    return advice
