from __future__ import annotations

import logging

from app.repositories.base import Repositories
from app.schemas.categories import CategoryCreate
from app.schemas.places import PlaceCreate
from app.schemas.reviews import ReviewCreate

logger = logging.getLogger(__name__)

INITIAL_CATEGORIES = [
    {"name": "Beach", "icon": "🏖️"},
    {"name": "Mountain", "icon": "🏔️"},
    {"name": "City", "icon": "🏙️"},
    {"name": "Historical", "icon": "🏛️"},
    {"name": "Resort", "icon": "🏨"},
]

INITIAL_PLACES = [
    {
        "name": "South Beach",
        "location": "Miami, Florida",
        "rating": 5,
        "category": "Beach",
        "description": "Beautiful sandy beach with crystal clear waters. Perfect for swimming, sunbathing, "
        "and people watching. The vibrant atmosphere and nearby restaurants make it a must-visit destination.",
    },
    {
        "name": "Rocky Mountain National Park",
        "location": "Colorado",
        "rating": 4,
        "category": "Mountain",
        "description": "Stunning mountain views with diverse wildlife and hiking trails for all skill levels. "
        "Alpine lakes and chances to see elk and moose in their natural habitat.",
    },
    {
        "name": "Cancun Resort & Spa",
        "location": "Cancun, Mexico",
        "rating": 4,
        "category": "Resort",
        "description": "Luxury all-inclusive resort with pristine beaches, multiple swimming pools "
        "and world-class dining options.",
    },
    {
        "name": "Lake Michigan",
        "location": "Michigan",
        "rating": 3,
        "category": "Beach",
        "description": "Peaceful lake perfect for fishing, boating, and water sports. "
        "Great for family vacations and outdoor enthusiasts.",
    },
    {
        "name": "Manhattan Experience",
        "location": "New York City",
        "rating": 2,
        "category": "City",
        "description": "Exciting city break with world-famous attractions including Times Square, "
        "Central Park, and Broadway shows.",
    },
    {
        "name": "Roman Colosseum",
        "location": "Rome, Italy",
        "rating": 5,
        "category": "Historical",
        "description": "Ancient amphitheater dating back to 70-80 AD. Guided tours cover gladiatorial "
        "contests and public spectacles.",
    },
]

# (place index, author, rating, content)
INITIAL_REVIEWS = [
    (0, "BeachLover22", 5, "Fantastic beach, loved the atmosphere!"),
    (1, "HikingEnthusiast", 4, "Beautiful mountains, great hiking trails."),
    (4, "CityExplorer", 5, "Love the city vibes and attractions!"),
    (5, "HistoryBuff", 5, "Amazing historical site, a must-visit!"),
    (2, "VacationMode", 4, "Relaxing resort, great service."),
]


def seed_catalog(repos: Repositories) -> dict:
    """Load the starter catalog into an empty store. Returns counts of inserted rows."""

    if repos.places.count() > 0:
        logger.info("Catalog already has places, skipping seed")
        return {"categories": 0, "places": 0, "reviews": 0}

    category_ids: dict[str, int] = {}
    added_categories = 0
    for raw in INITIAL_CATEGORIES:
        existing = repos.categories.get_by_name(raw["name"])
        if existing is None:
            existing = repos.categories.create(CategoryCreate(**raw))
            added_categories += 1
        category_ids[existing.name] = existing.id

    place_ids: list[int] = []
    for raw in INITIAL_PLACES:
        data = PlaceCreate(
            name=raw["name"],
            location=raw["location"],
            rating=raw["rating"],
            description=raw["description"],
            category_id=category_ids[raw["category"]],
        )
        place_ids.append(repos.places.create(data).id)

    for index, author, rating, content in INITIAL_REVIEWS:
        repos.reviews.create(
            ReviewCreate(content=content, rating=rating, author=author, place_id=place_ids[index])
        )

    logger.info(
        "Seed finished: categories=%s places=%s reviews=%s",
        added_categories, len(place_ids), len(INITIAL_REVIEWS),
    )
    return {"categories": added_categories, "places": len(place_ids), "reviews": len(INITIAL_REVIEWS)}
