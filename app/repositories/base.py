from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.models.enums import SortField, SortOrder
from app.schemas.categories import CategoryCreate, CategoryResponse
from app.schemas.places import PlaceCreate, PlaceResponse
from app.schemas.reviews import ReviewCreate, ReviewResponse, ReviewUpdate


@dataclass
class PlaceFilter:
    category_id: int | None = None
    min_rating: int | None = None
    search: str | None = None
    limit: int | None = None
    offset: int = 0

    @property
    def needle(self) -> str | None:
        """Lower-cased search term, or None when there is nothing to match."""
        if self.search is None or not self.search.strip():
            return None
        return self.search.strip().lower()


@dataclass
class PlaceSort:
    field: SortField | None = None
    order: SortOrder = SortOrder.asc

    @property
    def descending(self) -> bool:
        return self.order == SortOrder.desc


class PlaceRepository(ABC):
    @abstractmethod
    def list(self, flt: PlaceFilter | None = None, sort: PlaceSort | None = None) -> list[PlaceResponse]: ...

    @abstractmethod
    def get(self, place_id: int) -> PlaceResponse | None: ...

    @abstractmethod
    def create(self, data: PlaceCreate) -> PlaceResponse: ...

    @abstractmethod
    def update(self, place_id: int, data: PlaceCreate) -> PlaceResponse | None: ...

    @abstractmethod
    def delete(self, place_id: int) -> bool: ...

    def count(self) -> int:
        return len(self.list())


class CategoryRepository(ABC):
    @abstractmethod
    def list(self, *, include_places: bool = False) -> list[CategoryResponse]: ...

    @abstractmethod
    def get(self, category_id: int, *, include_places: bool = False) -> CategoryResponse | None: ...

    @abstractmethod
    def get_by_name(self, name: str) -> CategoryResponse | None: ...

    @abstractmethod
    def create(self, data: CategoryCreate) -> CategoryResponse: ...

    @abstractmethod
    def update(self, category_id: int, data: CategoryCreate) -> CategoryResponse | None: ...

    @abstractmethod
    def delete(self, category_id: int) -> bool: ...


class ReviewRepository(ABC):
    @abstractmethod
    def list(self, *, place_id: int | None = None, min_rating: int | None = None) -> list[ReviewResponse]: ...

    @abstractmethod
    def get(self, review_id: int) -> ReviewResponse | None: ...

    @abstractmethod
    def create(self, data: ReviewCreate) -> ReviewResponse: ...

    @abstractmethod
    def update(self, review_id: int, data: ReviewUpdate) -> ReviewResponse | None: ...

    @abstractmethod
    def delete(self, review_id: int) -> bool: ...


@dataclass
class Repositories:
    """Repositories sharing one unit of work (one session for SQL backends)."""

    places: PlaceRepository
    categories: CategoryRepository
    reviews: ReviewRepository
