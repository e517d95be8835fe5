from __future__ import annotations

from typing import Dict, List, Optional

from models import Category, Coordinate, DensityLevel, OpeningHours, Spot


NEW_YORK_SPOTS: List[Spot] = [
    Spot(
        id="1",
        name="Central Park",
        description="Beautiful urban park perfect for walking and relaxation",
        category=Category.PARK,
        location=Coordinate(lat=40.7829, lng=-73.9654),
        crowd_density=DensityLevel.HIGH,
        rating=4.7,
        estimated_visit_time=120,
        opening_hours=OpeningHours(open="06:00", close="23:00"),
        image_url="https://images.unsplash.com/photo-1566073771259-6a8506099945?w=400",
        tags=("nature", "walking", "photography"),
    ),
    Spot(
        id="2",
        name="Museum of Modern Art",
        description="World-renowned modern art collection",
        category=Category.MUSEUM,
        location=Coordinate(lat=40.7614, lng=-73.9776),
        crowd_density=DensityLevel.MEDIUM,
        rating=4.6,
        estimated_visit_time=180,
        opening_hours=OpeningHours(open="10:00", close="18:00"),
        image_url="https://images.unsplash.com/photo-1554907984-15263bfd63bd?w=400",
        tags=("art", "culture", "indoor"),
    ),
    Spot(
        id="3",
        name="Brooklyn Bridge",
        description="Iconic bridge with stunning city views",
        category=Category.MONUMENT,
        location=Coordinate(lat=40.7061, lng=-73.9969),
        crowd_density=DensityLevel.VERY_HIGH,
        rating=4.8,
        estimated_visit_time=60,
        opening_hours=OpeningHours(open="00:00", close="23:59"),
        image_url="https://images.unsplash.com/photo-1518391846015-55a9cc003b25?w=400",
        tags=("architecture", "views", "walking"),
    ),
    Spot(
        id="4",
        name="High Line Park",
        description="Elevated park built on former railway tracks",
        category=Category.PARK,
        location=Coordinate(lat=40.7480, lng=-74.0048),
        crowd_density=DensityLevel.LOW,
        rating=4.5,
        estimated_visit_time=90,
        opening_hours=OpeningHours(open="07:00", close="22:00"),
        image_url="https://images.unsplash.com/photo-1572204337004-14c0a1ff8e6b?w=400",
        tags=("nature", "unique", "walking"),
    ),
    Spot(
        id="5",
        name="Times Square",
        description="Vibrant commercial and entertainment hub",
        category=Category.ENTERTAINMENT,
        location=Coordinate(lat=40.7580, lng=-73.9855),
        crowd_density=DensityLevel.VERY_HIGH,
        rating=4.0,
        estimated_visit_time=45,
        opening_hours=OpeningHours(open="00:00", close="23:59"),
        image_url="https://images.unsplash.com/photo-1543716091-a840c05249ec?w=400",
        tags=("entertainment", "shopping", "nightlife"),
    ),
    Spot(
        id="6",
        name="The Frick Collection",
        description="Intimate art museum in historic mansion",
        category=Category.MUSEUM,
        location=Coordinate(lat=40.7710, lng=-73.9674),
        crowd_density=DensityLevel.LOW,
        rating=4.4,
        estimated_visit_time=120,
        opening_hours=OpeningHours(open="10:00", close="18:00"),
        image_url="https://images.unsplash.com/photo-1578662996442-48f60103fc96?w=400",
        tags=("art", "historic", "quiet"),
    ),
]

_BY_ID: Dict[str, Spot] = {spot.id: spot for spot in NEW_YORK_SPOTS}


def all_spots() -> List[Spot]:
    return list(NEW_YORK_SPOTS)


def get_spot(spot_id: str) -> Optional[Spot]:
    return _BY_ID.get(spot_id)
