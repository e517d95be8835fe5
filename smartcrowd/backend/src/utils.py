"""Utility helpers for the SmartCrowd recommender."""

from __future__ import annotations

import math

from models import Coordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def walking_minutes(dist_km: float, minutes_per_km: float = 12.0) -> int:
    """Walking time at ~5 km/h, rounded to whole minutes (halves round up)."""
    return round_half_up(dist_km * minutes_per_km)
