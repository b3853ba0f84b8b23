from __future__ import annotations

from collections import defaultdict

from app.repositories.base import Repositories
from app.schemas.places import CategoryStats, PlaceStatsResponse


def compute_place_stats(repos: Repositories) -> PlaceStatsResponse:
    """Aggregate rating figures over the whole catalog (rating histogram, per-category averages)."""

    places = repos.places.list()
    names = {c.id: c.name for c in repos.categories.list()}

    distribution = {str(r): 0 for r in range(1, 6)}
    grouped: dict[int | None, list[int]] = defaultdict(list)
    for p in places:
        distribution[str(p.rating)] += 1
        grouped[p.category_id].append(p.rating)

    by_category = [
        CategoryStats(
            category_id=category_id,
            name=names.get(category_id) if category_id is not None else None,
            count=len(ratings),
            average_rating=round(sum(ratings) / len(ratings), 2),
        )
        for category_id, ratings in grouped.items()
    ]
    # Uncategorised bucket last.
    by_category.sort(key=lambda s: (s.category_id is None, s.name or ""))

    total = len(places)
    average = round(sum(p.rating for p in places) / total, 2) if total else 0.0
    return PlaceStatsResponse(
        total=total,
        average_rating=average,
        rating_distribution=distribution,
        by_category=by_category,
    )
