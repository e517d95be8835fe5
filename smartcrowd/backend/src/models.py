"""Data models for the SmartCrowd tourist recommender."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Union


class DensityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


DENSITY_ORDER: List[DensityLevel] = [
    DensityLevel.LOW,
    DensityLevel.MEDIUM,
    DensityLevel.HIGH,
    DensityLevel.VERY_HIGH,
]


class Category(str, Enum):
    MONUMENT = "monument"
    MUSEUM = "museum"
    PARK = "park"
    RESTAURANT = "restaurant"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"


def parse_density(value: Union[str, DensityLevel, None]) -> Optional[DensityLevel]:
    """Return the matching level, or None for anything outside the scale."""
    if value is None:
        return None
    if isinstance(value, DensityLevel):
        return value
    try:
        return DensityLevel(str(value).strip().lower())
    except ValueError:
        return None


def density_rank(value: Union[str, DensityLevel, None]) -> Optional[int]:
    level = parse_density(value)
    if level is None:
        return None
    return DENSITY_ORDER.index(level)


def increase_density(level: DensityLevel) -> DensityLevel:
    idx = DENSITY_ORDER.index(level)
    return DENSITY_ORDER[min(idx + 1, len(DENSITY_ORDER) - 1)]


def decrease_density(level: DensityLevel) -> DensityLevel:
    idx = DENSITY_ORDER.index(level)
    return DENSITY_ORDER[max(idx - 1, 0)]


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float


@dataclass(frozen=True)
class OpeningHours:
    open: str  # HH:MM
    close: str  # HH:MM

    def is_open_at(self, moment: Union[datetime, time]) -> bool:
        at = moment.time() if isinstance(moment, datetime) else moment
        at = at.replace(second=0, microsecond=0)
        start = _parse_hhmm(self.open)
        end = _parse_hhmm(self.close)
        if start <= end:
            return start <= at <= end
        # wraps past midnight
        return at >= start or at <= end


@dataclass(frozen=True)
class Spot:
    id: str
    name: str
    category: Category
    location: Coordinate
    crowd_density: DensityLevel  # baseline
    rating: float
    estimated_visit_time: int  # minutes
    opening_hours: OpeningHours
    description: str = ""
    image_url: Optional[str] = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class CrowdReading:
    density: DensityLevel
    last_updated: datetime


@dataclass(frozen=True)
class Preferences:
    categories: FrozenSet[str] = frozenset()
    max_crowd_level: DensityLevel = DensityLevel.MEDIUM
    max_travel_distance: float = 5.0  # km
    preferred_visit_time: int = 120  # minutes

    def __post_init__(self) -> None:
        level = parse_density(self.max_crowd_level)
        if level is None:
            raise ValueError(f"unknown crowd level: {self.max_crowd_level!r}")
        cats = frozenset(c.value if isinstance(c, Category) else str(c).strip().lower() for c in self.categories)
        # frozen dataclass: normalize in place
        object.__setattr__(self, "max_crowd_level", level)
        object.__setattr__(self, "categories", cats)
        object.__setattr__(self, "max_travel_distance", float(self.max_travel_distance))
        object.__setattr__(self, "preferred_visit_time", int(self.preferred_visit_time))

    @classmethod
    def create(
        cls,
        categories: Iterable[Union[str, Category]] = (),
        max_crowd_level: Union[str, DensityLevel] = DensityLevel.MEDIUM,
        max_travel_distance: float = 5.0,
        preferred_visit_time: int = 120,
    ) -> "Preferences":
        return cls(
            categories=frozenset(categories),
            max_crowd_level=max_crowd_level,
            max_travel_distance=max_travel_distance,
            preferred_visit_time=preferred_visit_time,
        )


@dataclass(frozen=True)
class CrowdOverrides:
    """Live density values keyed by spot id, superseding each spot's baseline.

    Values are kept as raw strings so that out-of-scale readings survive to
    the scoring step instead of failing at construction.
    """

    levels: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Union[str, DensityLevel]]]) -> "CrowdOverrides":
        if not mapping:
            return cls()
        return cls(levels={str(k): (v.value if isinstance(v, DensityLevel) else str(v)) for k, v in mapping.items()})

    @classmethod
    def from_readings(cls, readings: Mapping[str, CrowdReading]) -> "CrowdOverrides":
        return cls(levels={k: r.density.value for k, r in readings.items()})

    def get(self, spot_id: str) -> Optional[str]:
        return self.levels.get(spot_id)

    def __contains__(self, spot_id: object) -> bool:
        return spot_id in self.levels

    def __len__(self) -> int:
        return len(self.levels)


@dataclass
class Recommendation:
    spot: Spot
    score: float
    reason: str
    estimated_travel_time: int  # minutes
    reasons: list[str] = field(default_factory=list)
    distance_km: float = 0.0
    crowd_density: str = ""
    debug_scores: Dict[str, float] = field(default_factory=dict)
