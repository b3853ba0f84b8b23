from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from app.repositories.base import (
    CategoryRepository,
    PlaceFilter,
    PlaceRepository,
    PlaceSort,
    Repositories,
    ReviewRepository,
)
from app.schemas.categories import CategoryCreate, CategoryResponse
from app.schemas.places import PlaceBrief, PlaceCreate, PlaceResponse
from app.schemas.reviews import ReviewCreate, ReviewResponse, ReviewUpdate


@dataclass
class _ReviewRecord:
    id: int
    content: str
    rating: int
    author: str
    place_id: int
    created_at: datetime


class MemoryStore:
    """In-process storage shared by the memory repositories of one application.

    Ids come from per-table counters that always start above the largest id
    already present, so preloaded records never collide with new ones.
    """

    def __init__(self, places: Iterable[PlaceResponse] = ()) -> None:
        self.lock = threading.RLock()
        self.places: dict[int, PlaceResponse] = {p.id: p for p in places}
        self.categories: dict[int, CategoryResponse] = {}
        self.reviews: dict[int, _ReviewRecord] = {}
        self._next = {
            "places": max(self.places, default=0) + 1,
            "categories": 1,
            "reviews": 1,
        }

    def next_id(self, table: str) -> int:
        with self.lock:
            value = self._next[table]
            self._next[table] = value + 1
            return value

    def repositories(self) -> Repositories:
        return Repositories(
            places=MemoryPlaceRepository(self),
            categories=MemoryCategoryRepository(self),
            reviews=MemoryReviewRepository(self),
        )


def _matches(place: PlaceResponse, flt: PlaceFilter) -> bool:
    if flt.category_id is not None and place.category_id != flt.category_id:
        return False
    if flt.min_rating is not None and place.rating < flt.min_rating:
        return False
    needle = flt.needle
    if needle is not None:
        haystack = (place.name, place.location, place.description)
        if not any(needle in field.lower() for field in haystack):
            return False
    return True


def _brief(place: PlaceResponse) -> PlaceBrief:
    return PlaceBrief(id=place.id, name=place.name, location=place.location, rating=place.rating)


class MemoryPlaceRepository(PlaceRepository):
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    def list(self, flt: PlaceFilter | None = None, sort: PlaceSort | None = None) -> list[PlaceResponse]:
        flt = flt or PlaceFilter()
        sort = sort or PlaceSort()
        with self.store.lock:
            items = [p for p in self.store.places.values() if _matches(p, flt)]

        items.sort(key=lambda p: p.id)
        if sort.field is not None:
            # list.sort is stable even with reverse=True, so ties stay in id order.
            items.sort(key=lambda p: getattr(p, sort.field.name), reverse=sort.descending)

        items = items[flt.offset:]
        if flt.limit is not None:
            items = items[: flt.limit]
        return [p.model_copy() for p in items]

    def get(self, place_id: int) -> PlaceResponse | None:
        with self.store.lock:
            place = self.store.places.get(place_id)
        return place.model_copy() if place else None

    def create(self, data: PlaceCreate) -> PlaceResponse:
        place = PlaceResponse(
            id=self.store.next_id("places"),
            name=data.name,
            location=data.location,
            rating=data.rating,
            description=data.description,
            video_url=data.video_url,
            category_id=data.category_id,
            created_at=datetime.utcnow(),
        )
        with self.store.lock:
            self.store.places[place.id] = place
        return place.model_copy()

    def update(self, place_id: int, data: PlaceCreate) -> PlaceResponse | None:
        with self.store.lock:
            existing = self.store.places.get(place_id)
            if existing is None:
                return None
            place = existing.model_copy(
                update={
                    "name": data.name,
                    "location": data.location,
                    "rating": data.rating,
                    "description": data.description,
                    "video_url": data.video_url,
                    "category_id": data.category_id,
                }
            )
            self.store.places[place_id] = place
        return place.model_copy()

    def delete(self, place_id: int) -> bool:
        with self.store.lock:
            if self.store.places.pop(place_id, None) is None:
                return False
            for review_id in [r.id for r in self.store.reviews.values() if r.place_id == place_id]:
                del self.store.reviews[review_id]
        return True

    def count(self) -> int:
        with self.store.lock:
            return len(self.store.places)


class MemoryCategoryRepository(CategoryRepository):
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    def _with_places(self, category: CategoryResponse, include_places: bool) -> CategoryResponse:
        if not include_places:
            return category.model_copy(update={"places": None})
        places = sorted(
            (p for p in self.store.places.values() if p.category_id == category.id), key=lambda p: p.id
        )
        return category.model_copy(update={"places": [_brief(p) for p in places]})

    def list(self, *, include_places: bool = False) -> list[CategoryResponse]:
        with self.store.lock:
            items = sorted(self.store.categories.values(), key=lambda c: c.name)
            return [self._with_places(c, include_places) for c in items]

    def get(self, category_id: int, *, include_places: bool = False) -> CategoryResponse | None:
        with self.store.lock:
            category = self.store.categories.get(category_id)
            return self._with_places(category, include_places) if category else None

    def get_by_name(self, name: str) -> CategoryResponse | None:
        with self.store.lock:
            for category in self.store.categories.values():
                if category.name == name:
                    return category.model_copy()
        return None

    def create(self, data: CategoryCreate) -> CategoryResponse:
        category = CategoryResponse(id=self.store.next_id("categories"), name=data.name, icon=data.icon)
        with self.store.lock:
            self.store.categories[category.id] = category
        return category.model_copy()

    def update(self, category_id: int, data: CategoryCreate) -> CategoryResponse | None:
        with self.store.lock:
            existing = self.store.categories.get(category_id)
            if existing is None:
                return None
            category = existing.model_copy(update={"name": data.name, "icon": data.icon or existing.icon})
            self.store.categories[category_id] = category
            return self._with_places(category, True)

    def delete(self, category_id: int) -> bool:
        with self.store.lock:
            if self.store.categories.pop(category_id, None) is None:
                return False
            for place_id, place in list(self.store.places.items()):
                if place.category_id == category_id:
                    self.store.places[place_id] = place.model_copy(update={"category_id": None})
        return True


class MemoryReviewRepository(ReviewRepository):
    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    def _to_response(self, r: _ReviewRecord) -> ReviewResponse:
        place = self.store.places.get(r.place_id)
        return ReviewResponse(
            id=r.id,
            content=r.content,
            rating=r.rating,
            author=r.author,
            place_id=r.place_id,
            created_at=r.created_at,
            place=PlaceBrief(id=place.id, name=place.name) if place else None,
        )

    def list(self, *, place_id: int | None = None, min_rating: int | None = None) -> list[ReviewResponse]:
        with self.store.lock:
            items = [
                r
                for r in self.store.reviews.values()
                if (place_id is None or r.place_id == place_id)
                and (min_rating is None or r.rating >= min_rating)
            ]
            items.sort(key=lambda r: (r.created_at, r.id), reverse=True)
            return [self._to_response(r) for r in items]

    def get(self, review_id: int) -> ReviewResponse | None:
        with self.store.lock:
            r = self.store.reviews.get(review_id)
            return self._to_response(r) if r else None

    def create(self, data: ReviewCreate) -> ReviewResponse:
        record = _ReviewRecord(
            id=self.store.next_id("reviews"),
            content=data.content,
            rating=data.rating,
            author=data.author,
            place_id=data.place_id,
            created_at=datetime.utcnow(),
        )
        with self.store.lock:
            self.store.reviews[record.id] = record
            return self._to_response(record)

    def update(self, review_id: int, data: ReviewUpdate) -> ReviewResponse | None:
        with self.store.lock:
            r = self.store.reviews.get(review_id)
            if r is None:
                return None
            r.content = data.content
            r.rating = data.rating
            r.author = data.author
            return self._to_response(r)

    def delete(self, review_id: int) -> bool:
        with self.store.lock:
            return self.store.reviews.pop(review_id, None) is not None
