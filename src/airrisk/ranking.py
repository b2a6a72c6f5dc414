"""
Route ranking by personal health risk.

Each route is scored with ``compute_phri`` from its average PM2.5 and its
duration at a reference activity level. Ordering is deterministic:

- safest: lowest PHRI, then shortest duration, then lowest route index
- fastest: shortest duration, then lowest route index

Routes without any air quality sample are never marked safest and are
ranked after every route that has data.

Every sample is also scored on its own over an equal share of the route
duration; the highest of those is reported as the route's peak.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .models import (
    ActivityLevel,
    ExposureProfile,
    PersonProfile,
    PHRIResult,
    RouteAnalysis,
    RouteCandidate,
    RouteRanking,
    SegmentRisk,
    TravelMode,
)
from .risk import compute_phri
from .routes import route_coverage

logger = logging.getLogger(__name__)

REFERENCE_ACTIVITY = ActivityLevel.MODERATE

# (minimum share of samples with data, label)
DATA_QUALITY_THRESHOLDS = ((0.8, "high"), (0.5, "medium"))

NO_DATA_MESSAGE = "Not enough air quality data to compare routes."
SAME_ROUTE_MESSAGE = "The fastest route is also the safest."


def _pm25_reduction(safest: RouteCandidate, fastest: RouteCandidate) -> Optional[float]:
    """Percent PM2.5 reduction of ``safest`` relative to ``fastest``."""
    safe_pm25, fast_pm25 = safest.average_pm25, fastest.average_pm25
    if safe_pm25 is None or fast_pm25 is None or fast_pm25 <= 0:
        return None
    return (fast_pm25 - safe_pm25) / fast_pm25 * 100.0


def _extra_minutes(safest: RouteCandidate, fastest: RouteCandidate) -> int:
    return int(round((safest.duration_seconds - fastest.duration_seconds) / 60.0))


def _minutes_text(minutes: int) -> str:
    return f"{minutes} extra minute" if minutes == 1 else f"{minutes} extra minutes"


def tradeoff_message(analyses: Sequence[RouteAnalysis], safest: Optional[int], fastest: Optional[int]) -> str:
    """Summary sentence comparing the safest and the fastest route."""
    if safest is None or fastest is None:
        return NO_DATA_MESSAGE
    if safest == fastest:
        return SAME_ROUTE_MESSAGE

    safe_route = analyses[safest].route
    fast_route = analyses[fastest].route
    extra = _extra_minutes(safe_route, fast_route)
    reduction = _pm25_reduction(safe_route, fast_route)

    if reduction is None:
        return (
            f"Route {safest + 1} has the lowest health risk; the fastest route "
            f"(Route {fastest + 1}) has no air quality data. It takes "
            f"{_minutes_text(extra)}."
        )
    return (
        f"Route {safest + 1} reduces PM2.5 exposure by {reduction:.1f}% compared with "
        f"the fastest route (Route {fastest + 1}) and takes {_minutes_text(extra)}."
    )


def _annotate(analyses: List[RouteAnalysis], safest: Optional[int], fastest: Optional[int]) -> None:
    for analysis in analyses:
        route = analysis.route
        if analysis.phri is None:
            analysis.health_reason = "No air quality data for this route"
            analysis.tradeoff = ""
            continue

        if analysis.is_safest and analysis.is_fastest:
            analysis.health_reason = "Fastest route with the lowest health risk"
        elif analysis.is_safest:
            reduction = _pm25_reduction(route, analyses[fastest].route) if fastest is not None else None
            analysis.health_reason = (
                f"Cuts PM2.5 exposure by {reduction:.0f}% versus the fastest route"
                if reduction is not None
                else "Lowest health risk"
            )
        elif analysis.is_fastest:
            analysis.health_reason = "Fastest route"
        else:
            analysis.health_reason = "Alternative route"

        if analysis.is_safest and not analysis.is_fastest and fastest is not None:
            analysis.tradeoff = _minutes_text(_extra_minutes(route, analyses[fastest].route))
        elif analysis.is_fastest and not analysis.is_safest and safest is not None:
            safe_pm25 = analyses[safest].route.average_pm25
            pm25 = route.average_pm25
            if safe_pm25 and pm25 is not None:
                analysis.tradeoff = (
                    f"{(pm25 - safe_pm25) / safe_pm25 * 100.0:.0f}% more PM2.5 than the safest route"
                )
            else:
                analysis.tradeoff = "More PM2.5 than the safest route"
        elif not analysis.is_safest and not analysis.is_fastest:
            analysis.tradeoff = "Balances travel time and exposure"
        else:
            analysis.tradeoff = ""


def data_quality(with_data: int, total: int) -> str:
    """Label route sample coverage as high, medium, low or none."""
    if total <= 0 or with_data <= 0:
        return "none"
    ratio = with_data / total
    for lower, label in DATA_QUALITY_THRESHOLDS:
        if ratio >= lower:
            return label
    return "low"


def _segment_risks(
    route: RouteCandidate, score: Callable[[float, float], PHRIResult]
) -> List[SegmentRisk]:
    """Score every sample over an equal share of the route duration."""
    with_data = sum(1 for s in route.samples if s.pm25 is not None)
    minutes = route.duration_minutes / with_data if with_data else 0.0
    return [
        SegmentRisk(
            latitude=sample.latitude,
            longitude=sample.longitude,
            pm25=sample.pm25,
            phri=score(sample.pm25, minutes) if sample.pm25 is not None else None,
        )
        for sample in route.samples
    ]


def rank_routes(
    routes: Sequence[RouteCandidate],
    person: Optional[PersonProfile] = None,
    travel_mode: TravelMode = TravelMode.WALKING,
    activity_level: ActivityLevel = REFERENCE_ACTIVITY,
    has_mask: bool = False,
) -> RouteRanking:
    """
    Score and rank alternative routes.

    Args:
        routes: Candidates from the directions provider, with samples
        person: Personal profile; a healthy 30-year-old non-smoker if None
        travel_mode: Mode whose exposure modifier applies to every route
        activity_level: Reference activity level for the whole trip
        has_mask: Whether the traveller wears a mask

    Returns:
        RouteRanking with per-route analyses in input order, the safest and
        fastest indices, the ranked order and the trade-off message
    """
    person = person or PersonProfile()
    travel_mode = TravelMode(travel_mode)
    activity_level = ActivityLevel(activity_level)

    def score(pm25: float, minutes: float) -> PHRIResult:
        exposure = ExposureProfile(
            pm25=pm25,
            duration_minutes=minutes,
            activity_level=activity_level,
            is_outdoor=True,
            has_mask=has_mask,
            travel_mode=travel_mode,
        )
        return compute_phri(exposure, person)

    analyses: List[RouteAnalysis] = []
    for index, route in enumerate(routes):
        average = route.average_pm25
        phri = None
        if average is not None:
            phri = score(average, route.duration_minutes)
        else:
            logger.warning(f"Route {index} has no air quality samples; ranking it last")

        segments = _segment_risks(route, score)
        scored_segments = [s for s in segments if s.phri is not None]
        peak = max(scored_segments, key=lambda s: s.score) if scored_segments else None
        with_data, total = route_coverage(route.samples)

        analyses.append(
            RouteAnalysis(
                index=index,
                route=route,
                phri=phri,
                segment_risks=segments,
                peak_phri=peak.score if peak is not None else None,
                peak_location=peak.location if peak is not None else None,
                coverage=with_data / total if total else 0.0,
                data_quality=data_quality(with_data, total),
            )
        )

    def scored_key(a: RouteAnalysis) -> Tuple[float, float, int]:
        return (a.phri.score, a.route.duration_seconds, a.index)  # type: ignore[union-attr]

    def unscored_key(a: RouteAnalysis) -> Tuple[float, int]:
        return (a.route.duration_seconds, a.index)

    scored = sorted((a for a in analyses if a.phri is not None), key=scored_key)
    unscored = sorted((a for a in analyses if a.phri is None), key=unscored_key)
    order = [a.index for a in scored + unscored]

    safest_index = scored[0].index if scored else None
    fastest_index = min(analyses, key=unscored_key).index if analyses else None

    if safest_index is not None:
        analyses[safest_index].is_safest = True
    if fastest_index is not None:
        analyses[fastest_index].is_fastest = True

    _annotate(analyses, safest_index, fastest_index)

    return RouteRanking(
        analyses=analyses,
        safest_index=safest_index,
        fastest_index=fastest_index,
        order=order,
        tradeoff_message=tradeoff_message(analyses, safest_index, fastest_index),
    )
