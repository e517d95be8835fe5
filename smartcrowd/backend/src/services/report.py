from __future__ import annotations

from typing import List, Optional

from models import Coordinate, Preferences, Recommendation

CROWD_ICONS = {
    "low": "🟢",
    "medium": "🟡",
    "high": "🟠",
    "very-high": "🔴",
}


def crowd_label(level: str) -> str:
    icon = CROWD_ICONS.get(level, "⚪")
    return f"{icon} {level.replace('-', ' ')}"


def build_report(
    preferences: Preferences,
    ranked: List[Recommendation],
    origin: Coordinate,
    updated_at: Optional[str] = None,
) -> str:
    categories = ", ".join(sorted(preferences.categories)) if preferences.categories else "Any"
    lines = [
        "## Smart Recommendations",
        "",
        "Based on crowd analysis and your preferences",
        "",
        f"- Your location: {origin.lat:.4f}, {origin.lng:.4f}",
        f"- Interests: {categories}",
        f"- Max crowd level: {preferences.max_crowd_level.value.replace('-', ' ')}",
        f"- Max travel distance: {preferences.max_travel_distance:.1f} km",
        f"- Preferred visit time: {preferences.preferred_visit_time} min",
    ]
    if updated_at:
        lines.append(f"- Crowd data updated: {updated_at}")
    lines.append("")

    if not ranked:
        lines.append("No spots match your preferences right now. Try widening the distance or crowd level.")
        return "\n".join(lines)

    lines.append("### Top Picks")
    for idx, rec in enumerate(ranked, start=1):
        spot = rec.spot
        lines += [
            f"#### {idx}. {spot.name}",
            f"- Category: {spot.category.value}",
            f"- Score: {rec.score:.1f}",
            f"- Crowd: {crowd_label(rec.crowd_density or spot.crowd_density.value)}",
            f"- Rating: {spot.rating:.1f}/5",
            f"- Walk: {rec.estimated_travel_time} min ({rec.distance_km:.1f} km)",
            f"- Visit time: {spot.estimated_visit_time} min",
            f"- Hours: {spot.opening_hours.open}–{spot.opening_hours.close}",
            f"- Why: {rec.reason}",
            "",
        ]

    return "\n".join(lines)
