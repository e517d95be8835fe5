from __future__ import annotations

from datetime import datetime

import pytest

from config import Configuration
from models import Category, Coordinate, CrowdOverrides, DensityLevel, OpeningHours, Preferences, Spot
from services.catalog import all_spots, get_spot
from services.recommendation import RecommendationEngine, is_crowd_level_acceptable
from utils import distance_km, walking_minutes

ORIGIN = Coordinate(lat=40.7589, lng=-73.9851)
DEFAULT_ORIGIN = Configuration().default_origin()


def _spot(
    spot_id: str,
    *,
    lat: float = 40.7589,
    lng: float = -73.9851,
    category: Category = Category.PARK,
    density: DensityLevel = DensityLevel.LOW,
    rating: float = 4.0,
    visit: int = 120,
    hours: OpeningHours = OpeningHours(open="00:00", close="23:59"),
) -> Spot:
    return Spot(
        id=spot_id,
        name=f"Spot {spot_id}",
        category=category,
        location=Coordinate(lat=lat, lng=lng),
        crowd_density=density,
        rating=rating,
        estimated_visit_time=visit,
        opening_hours=hours,
    )


def test_high_density_park_excluded_when_max_is_medium() -> None:
    central_park = _spot("cp", lat=40.7829, lng=-73.9654, density=DensityLevel.HIGH)
    prefs = Preferences.create(categories=["park"], max_crowd_level="medium", max_travel_distance=5, preferred_visit_time=120)

    assert RecommendationEngine().recommend(ORIGIN, [central_park], prefs) == []


def test_low_density_park_scored_with_every_bonus() -> None:
    high_line = _spot("hl", lat=40.7480, lng=-74.0048, density=DensityLevel.LOW, rating=4.5, visit=90)
    prefs = Preferences.create(categories=["park", "museum"], max_crowd_level="high", max_travel_distance=5, preferred_visit_time=120)

    [rec] = RecommendationEngine().recommend(ORIGIN, [high_line], prefs)

    dist = distance_km(ORIGIN, high_line.location)
    # |90 - 120| == 30 sits exactly on the boundary and still earns the visit bonus
    expected = 30 + 25 + 45 + (50 - dist * 10) + 20
    assert rec.score == pytest.approx(expected)
    assert rec.debug_scores["visit_time"] == 20
    assert rec.estimated_travel_time == walking_minutes(dist)
    assert rec.reasons == [
        "Matches your interest in park",
        "Low crowd density for peaceful visit",
        "Perfect visit duration for your schedule",
    ]
    assert rec.reason == ". ".join(rec.reasons)
    assert rec.crowd_density == "low"


def test_visit_time_bonus_boundary() -> None:
    prefs = Preferences.create(max_crowd_level="very-high", max_travel_distance=5, preferred_visit_time=120)
    engine = RecommendationEngine()
    at_limit = engine.score_spot(ORIGIN, _spot("a", visit=150), prefs, CrowdOverrides())
    past_limit = engine.score_spot(ORIGIN, _spot("b", visit=151), prefs, CrowdOverrides())
    assert at_limit is not None and past_limit is not None
    assert at_limit.debug_scores["visit_time"] == 20
    assert past_limit.debug_scores["visit_time"] == 0


def test_fallback_reason_when_nothing_triggers() -> None:
    spot = _spot("x", category=Category.SHOPPING, density=DensityLevel.HIGH, visit=10)
    prefs = Preferences.create(categories=["park"], max_crowd_level="very-high", max_travel_distance=5, preferred_visit_time=120)
    [rec] = RecommendationEngine().recommend(ORIGIN, [spot], prefs)
    assert rec.reasons == []
    assert rec.reason == "Good match for your preferences"


def test_override_replaces_baseline() -> None:
    spot = _spot("o", density=DensityLevel.LOW)
    prefs = Preferences.create(max_crowd_level="medium", max_travel_distance=5)
    engine = RecommendationEngine()

    assert engine.recommend(ORIGIN, [spot], prefs, CrowdOverrides.from_mapping({"o": "very-high"})) == []

    [rec] = engine.recommend(ORIGIN, [spot], prefs, CrowdOverrides.from_mapping({"other": "very-high"}))
    assert rec.crowd_density == "low"


def test_unknown_override_is_accepted_with_fallback_bonus() -> None:
    spot = _spot("u", density=DensityLevel.VERY_HIGH)
    prefs = Preferences.create(max_crowd_level="low", max_travel_distance=5)
    [rec] = RecommendationEngine().recommend(ORIGIN, [spot], prefs, CrowdOverrides.from_mapping({"u": "packed"}))
    assert rec.crowd_density == "packed"
    assert rec.debug_scores["crowd"] == 10
    assert "Low crowd density for peaceful visit" not in rec.reasons


def test_crowd_acceptability_is_inclusive() -> None:
    assert is_crowd_level_acceptable("medium", "medium")
    assert is_crowd_level_acceptable(DensityLevel.LOW, DensityLevel.MEDIUM)
    assert not is_crowd_level_acceptable("high", "medium")


def test_distance_penalty_floors_at_zero() -> None:
    far = _spot("f", lat=40.7589 + 0.07, density=DensityLevel.LOW)  # roughly 7.8 km north
    prefs = Preferences.create(max_crowd_level="low", max_travel_distance=10)
    [rec] = RecommendationEngine().recommend(ORIGIN, [far], prefs)
    assert rec.debug_scores["distance"] == 0.0


def test_results_respect_filters_limit_and_order() -> None:
    spots = [
        _spot(str(i), lat=40.7589 + i * 0.003, density=d, rating=3.0 + (i % 3) * 0.5)
        for i, d in enumerate([DensityLevel.LOW, DensityLevel.MEDIUM, DensityLevel.HIGH] * 4)
    ]
    spots.append(_spot("too-far", lat=41.5))
    prefs = Preferences.create(max_crowd_level="medium", max_travel_distance=3)

    ranked = RecommendationEngine().recommend(ORIGIN, spots, prefs)

    assert len(ranked) == 5
    for rec in ranked:
        assert distance_km(ORIGIN, rec.spot.location) <= prefs.max_travel_distance
        assert rec.crowd_density in {"low", "medium"}
    scores = [r.score for r in ranked]
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_input_order() -> None:
    twins = [_spot(name) for name in ("first", "second", "third")]
    prefs = Preferences.create(max_crowd_level="low", max_travel_distance=1)
    ranked = RecommendationEngine().recommend(ORIGIN, twins, prefs)
    assert [r.spot.id for r in ranked] == ["first", "second", "third"]

    ranked_reversed = RecommendationEngine().recommend(ORIGIN, list(reversed(twins)), prefs)
    assert [r.spot.id for r in ranked_reversed] == ["third", "second", "first"]


def test_empty_candidates() -> None:
    assert RecommendationEngine().recommend(ORIGIN, [], Preferences()) == []


def test_max_results_configurable() -> None:
    spots = [_spot(str(i)) for i in range(4)]
    engine = RecommendationEngine(Configuration(max_results=2))
    assert len(engine.recommend(ORIGIN, spots, Preferences.create(max_travel_distance=1))) == 2


def test_max_results_never_exceeds_five(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMARTCROWD_MAX_RESULTS", "10")
    cfg = Configuration.from_env()
    assert cfg.max_results == 10
    spots = [_spot(str(i)) for i in range(8)]
    ranked = RecommendationEngine(cfg).recommend(ORIGIN, spots, Preferences.create(max_travel_distance=1))
    assert len(ranked) == 5
    assert [r.spot.id for r in ranked] == ["0", "1", "2", "3", "4"]


def test_open_now_filter() -> None:
    museum = _spot("m", hours=OpeningHours(open="10:00", close="18:00"))
    prefs = Preferences.create(max_crowd_level="low", max_travel_distance=1)
    engine = RecommendationEngine()
    assert engine.recommend(ORIGIN, [museum], prefs, at=datetime(2024, 5, 15, 8, 0)) == []
    assert len(engine.recommend(ORIGIN, [museum], prefs, at=datetime(2024, 5, 15, 11, 0))) == 1
    assert len(engine.recommend(ORIGIN, [museum], prefs)) == 1


def test_catalog_defaults() -> None:
    prefs = Preferences.create(categories=["park", "museum"], max_crowd_level="medium", max_travel_distance=5, preferred_visit_time=120)
    ranked = RecommendationEngine().recommend(DEFAULT_ORIGIN, all_spots(), prefs)
    ids = [r.spot.id for r in ranked]
    # Central Park is "high" and both very-high spots are filtered out
    assert set(ids) == {"2", "4", "6"}
    assert get_spot("1") is not None and get_spot("nope") is None
