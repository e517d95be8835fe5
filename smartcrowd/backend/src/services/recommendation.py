from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from loguru import logger

from config import Configuration
from models import Coordinate, CrowdOverrides, DensityLevel, Preferences, Recommendation, Spot, density_rank
from utils import distance_km, walking_minutes

CATEGORY_BONUS = 30.0
VISIT_TIME_BONUS = 20.0
VISIT_TIME_TOLERANCE_MIN = 30
DISTANCE_BASE = 50.0
DISTANCE_PENALTY_PER_KM = 10.0
RATING_WEIGHT = 10.0

CROWD_BONUS: Dict[str, float] = {
    DensityLevel.LOW.value: 25.0,
    DensityLevel.MEDIUM.value: 15.0,
    DensityLevel.HIGH.value: 5.0,
    DensityLevel.VERY_HIGH.value: 0.0,
}
UNKNOWN_CROWD_BONUS = 10.0

FALLBACK_REASON = "Good match for your preferences"
MAX_RECOMMENDATIONS = 5


def _crowd_score(level: str) -> float:
    return CROWD_BONUS.get(level, UNKNOWN_CROWD_BONUS)


def is_crowd_level_acceptable(current: Union[str, DensityLevel], maximum: Union[str, DensityLevel]) -> bool:
    """True when ``current`` is at or below ``maximum`` on the ordered scale.

    Values outside the scale have no defined position; they are accepted
    here and scored with the unknown-level bonus instead of being compared.
    """
    current_rank = density_rank(current)
    max_rank = density_rank(maximum)
    if current_rank is None or max_rank is None:
        return True
    return current_rank <= max_rank


def _effective_density(spot: Spot, overrides: CrowdOverrides) -> str:
    override = overrides.get(spot.id)
    if override is None or override == "":
        return spot.crowd_density.value
    return override


class RecommendationEngine:
    """Filters and ranks spots for one origin and set of preferences."""

    def __init__(self, cfg: Optional[Configuration] = None) -> None:
        self.cfg = cfg or Configuration()

    def score_spot(
        self,
        origin: Coordinate,
        spot: Spot,
        preferences: Preferences,
        overrides: CrowdOverrides,
    ) -> Optional[Recommendation]:
        """Score one spot, or return None when a hard filter rejects it."""
        dist_km = distance_km(origin, spot.location)
        if dist_km > preferences.max_travel_distance:
            return None

        crowd = _effective_density(spot, overrides)
        if not is_crowd_level_acceptable(crowd, preferences.max_crowd_level):
            return None

        reasons: list[str] = []

        category_score = 0.0
        if spot.category.value in preferences.categories:
            category_score = CATEGORY_BONUS
            reasons.append(f"Matches your interest in {spot.category.value}")

        crowd_score = _crowd_score(crowd)
        if crowd_score > 15:
            reasons.append("Low crowd density for peaceful visit")

        rating_score = spot.rating * RATING_WEIGHT
        distance_score = max(0.0, DISTANCE_BASE - dist_km * DISTANCE_PENALTY_PER_KM)

        visit_score = 0.0
        if abs(spot.estimated_visit_time - preferences.preferred_visit_time) <= VISIT_TIME_TOLERANCE_MIN:
            visit_score = VISIT_TIME_BONUS
            reasons.append("Perfect visit duration for your schedule")

        score = category_score + crowd_score + rating_score + distance_score + visit_score

        return Recommendation(
            spot=spot,
            score=score,
            reason=". ".join(reasons) or FALLBACK_REASON,
            estimated_travel_time=walking_minutes(dist_km, self.cfg.walking_minutes_per_km),
            reasons=reasons,
            distance_km=dist_km,
            crowd_density=crowd,
            debug_scores={
                "category": category_score,
                "crowd": crowd_score,
                "rating": rating_score,
                "distance": distance_score,
                "visit_time": visit_score,
            },
        )

    def recommend(
        self,
        origin: Coordinate,
        spots: Iterable[Spot],
        preferences: Preferences,
        crowd_overrides: Optional[CrowdOverrides] = None,
        *,
        at: Optional[datetime] = None,
    ) -> List[Recommendation]:
        """Return at most five spots (fewer if ``max_results`` says so), best score first.

        Equal scores keep their input order. Passing ``at`` additionally
        drops spots that are closed at that moment.
        """
        overrides = crowd_overrides or CrowdOverrides()
        accepted: list[Recommendation] = []
        considered = 0

        for spot in spots:
            considered += 1
            if at is not None and not spot.opening_hours.is_open_at(at):
                continue
            rec = self.score_spot(origin, spot, preferences, overrides)
            if rec is not None:
                accepted.append(rec)

        # list.sort is stable, so ties stay in input order
        accepted.sort(key=lambda r: r.score, reverse=True)
        limit = max(0, min(self.cfg.max_results, MAX_RECOMMENDATIONS))
        results = accepted[:limit]

        logger.info(
            "recommendations considered={} accepted={} returned={} overrides={}",
            considered,
            len(accepted),
            len(results),
            len(overrides),
        )
        return results
