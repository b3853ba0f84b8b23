from __future__ import annotations

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from app.models.categories import Category
from app.models.enums import SortField
from app.models.places import Place
from app.models.reviews import Review
from app.repositories.base import (
    CategoryRepository,
    PlaceFilter,
    PlaceRepository,
    PlaceSort,
    ReviewRepository,
)
from app.schemas.categories import CategoryCreate, CategoryResponse
from app.schemas.places import PlaceBrief, PlaceCreate, PlaceResponse
from app.schemas.reviews import ReviewCreate, ReviewResponse, ReviewUpdate

_SORT_COLUMNS = {
    SortField.name: Place.name,
    SortField.rating: Place.rating,
    SortField.location: Place.location,
    SortField.created_at: Place.created_at,
}


def like_pattern(needle: str) -> str:
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def to_place_response(place: Place) -> PlaceResponse:
    return PlaceResponse(
        id=place.id,
        name=place.name,
        location=place.location,
        rating=place.rating,
        description=place.description,
        video_url=place.video_url,
        category_id=place.category_id,
        created_at=place.created_at,
    )


def to_review_response(r: Review) -> ReviewResponse:
    return ReviewResponse(
        id=r.id,
        content=r.content,
        rating=r.rating,
        author=r.author,
        place_id=r.place_id,
        created_at=r.created_at,
        place=PlaceBrief(id=r.place.id, name=r.place.name) if r.place else None,
    )


class OrmPlaceRepository(PlaceRepository):
    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, flt: PlaceFilter | None = None, sort: PlaceSort | None = None) -> list[PlaceResponse]:
        flt = flt or PlaceFilter()
        sort = sort or PlaceSort()
        stmt = select(Place)

        if flt.category_id is not None:
            stmt = stmt.where(Place.category_id == flt.category_id)
        if flt.min_rating is not None:
            stmt = stmt.where(Place.rating >= flt.min_rating)
        needle = flt.needle
        if needle is not None:
            pattern = like_pattern(needle)
            stmt = stmt.where(
                or_(
                    func.lower(Place.name).like(pattern, escape="\\"),
                    func.lower(Place.location).like(pattern, escape="\\"),
                    func.lower(Place.description).like(pattern, escape="\\"),
                )
            )

        if sort.field is not None:
            column = _SORT_COLUMNS[sort.field]
            stmt = stmt.order_by(column.desc() if sort.descending else column.asc(), Place.id)
        else:
            stmt = stmt.order_by(Place.id)

        if flt.offset:
            stmt = stmt.offset(flt.offset)
        if flt.limit is not None:
            stmt = stmt.limit(flt.limit)

        return [to_place_response(p) for p in self.db.scalars(stmt).all()]

    def get(self, place_id: int) -> PlaceResponse | None:
        place = self.db.get(Place, place_id)
        return to_place_response(place) if place else None

    def create(self, data: PlaceCreate) -> PlaceResponse:
        place = Place(
            name=data.name,
            location=data.location,
            rating=data.rating,
            description=data.description,
            video_url=data.video_url,
            category_id=data.category_id,
        )
        self.db.add(place)
        self.db.commit()
        self.db.refresh(place)
        return to_place_response(place)

    def update(self, place_id: int, data: PlaceCreate) -> PlaceResponse | None:
        place = self.db.get(Place, place_id)
        if not place:
            return None
        place.name = data.name
        place.location = data.location
        place.rating = data.rating
        place.description = data.description
        place.video_url = data.video_url
        place.category_id = data.category_id
        self.db.add(place)
        self.db.commit()
        self.db.refresh(place)
        return to_place_response(place)

    def delete(self, place_id: int) -> bool:
        place = self.db.get(Place, place_id)
        if not place:
            return False
        self.db.delete(place)
        self.db.commit()
        return True

    def count(self) -> int:
        return int(self.db.scalar(select(func.count()).select_from(Place)) or 0)


class OrmCategoryRepository(CategoryRepository):
    def __init__(self, db: Session) -> None:
        self.db = db

    @staticmethod
    def _to_response(category: Category, include_places: bool) -> CategoryResponse:
        places = None
        if include_places:
            places = [
                PlaceBrief(id=p.id, name=p.name, location=p.location, rating=p.rating)
                for p in sorted(category.places, key=lambda p: p.id)
            ]
        return CategoryResponse(id=category.id, name=category.name, icon=category.icon, places=places)

    def list(self, *, include_places: bool = False) -> list[CategoryResponse]:
        stmt = select(Category).order_by(Category.name)
        if include_places:
            stmt = stmt.options(selectinload(Category.places))
        return [self._to_response(c, include_places) for c in self.db.scalars(stmt).all()]

    def get(self, category_id: int, *, include_places: bool = False) -> CategoryResponse | None:
        category = self.db.get(Category, category_id)
        return self._to_response(category, include_places) if category else None

    def get_by_name(self, name: str) -> CategoryResponse | None:
        category = self.db.scalar(select(Category).where(Category.name == name))
        return self._to_response(category, False) if category else None

    def create(self, data: CategoryCreate) -> CategoryResponse:
        category = Category(name=data.name, icon=data.icon)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return self._to_response(category, False)

    def update(self, category_id: int, data: CategoryCreate) -> CategoryResponse | None:
        category = self.db.get(Category, category_id)
        if not category:
            return None
        category.name = data.name
        category.icon = data.icon or category.icon
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return self._to_response(category, True)

    def delete(self, category_id: int) -> bool:
        category = self.db.get(Category, category_id)
        if not category:
            return False
        self.db.execute(update(Place).where(Place.category_id == category_id).values(category_id=None))
        self.db.delete(category)
        self.db.commit()
        return True


class OrmReviewRepository(ReviewRepository):
    def __init__(self, db: Session) -> None:
        self.db = db

    def list(self, *, place_id: int | None = None, min_rating: int | None = None) -> list[ReviewResponse]:
        stmt = select(Review).options(selectinload(Review.place))
        if place_id is not None:
            stmt = stmt.where(Review.place_id == place_id)
        if min_rating is not None:
            stmt = stmt.where(Review.rating >= min_rating)
        stmt = stmt.order_by(Review.created_at.desc(), Review.id.desc())
        return [to_review_response(r) for r in self.db.scalars(stmt).all()]

    def get(self, review_id: int) -> ReviewResponse | None:
        review = self.db.get(Review, review_id)
        return to_review_response(review) if review else None

    def create(self, data: ReviewCreate) -> ReviewResponse:
        review = Review(content=data.content, rating=data.rating, author=data.author, place_id=data.place_id)
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return to_review_response(review)

    def update(self, review_id: int, data: ReviewUpdate) -> ReviewResponse | None:
        review = self.db.get(Review, review_id)
        if not review:
            return None
        review.content = data.content
        review.rating = data.rating
        review.author = data.author
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return to_review_response(review)

    def delete(self, review_id: int) -> bool:
        review = self.db.get(Review, review_id)
        if not review:
            return False
        self.db.delete(review)
        self.db.commit()
        return True
