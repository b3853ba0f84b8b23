from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import get_category_repository, get_place_repository, get_repositories
from app.core.errors import ValidationFailed
from app.models.enums import SortField, SortOrder
from app.repositories.base import CategoryRepository, PlaceFilter, PlaceRepository, PlaceSort, Repositories
from app.schemas.places import PlaceCreate, PlaceDeletedResponse, PlaceResponse, PlaceStatsResponse
from app.services.stats import compute_place_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/places", tags=["places"])

PLACE_NOT_FOUND = "Place not found"


def _ensure_category(categories: CategoryRepository, payload: PlaceCreate) -> None:
    if payload.category_id is not None and categories.get(payload.category_id) is None:
        raise ValidationFailed(["CategoryId must reference an existing category"])


@router.get("", response_model=list[PlaceResponse])
def list_places(
    places: PlaceRepository = Depends(get_place_repository),
    category_id: int | None = Query(default=None, alias="categoryId"),
    min_rating: int | None = Query(default=None, alias="minRating", ge=1, le=5),
    search: str | None = Query(default=None, max_length=200),
    sort_by: SortField | None = Query(default=None, alias="sortBy"),
    sort_order: SortOrder = Query(default=SortOrder.asc, alias="sortOrder"),
    limit: int | None = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> list[PlaceResponse]:
    flt = PlaceFilter(category_id=category_id, min_rating=min_rating, search=search, limit=limit, offset=offset)
    return places.list(flt, PlaceSort(field=sort_by, order=sort_order))


@router.post("", response_model=PlaceResponse)
def create_place(
    payload: PlaceCreate,
    places: PlaceRepository = Depends(get_place_repository),
    categories: CategoryRepository = Depends(get_category_repository),
) -> PlaceResponse:
    _ensure_category(categories, payload)
    place = places.create(payload)
    logger.info("Place created: id=%s name=%r", place.id, place.name)
    return place


@router.get("/stats", response_model=PlaceStatsResponse)
def place_stats(repos: Repositories = Depends(get_repositories)) -> PlaceStatsResponse:
    return compute_place_stats(repos)


@router.get("/{place_id}", response_model=PlaceResponse)
def get_place(place_id: int, places: PlaceRepository = Depends(get_place_repository)) -> PlaceResponse:
    place = places.get(place_id)
    if not place:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PLACE_NOT_FOUND)
    return place


@router.put("/{place_id}", response_model=PlaceResponse)
def update_place(
    place_id: int,
    payload: PlaceCreate,
    places: PlaceRepository = Depends(get_place_repository),
    categories: CategoryRepository = Depends(get_category_repository),
) -> PlaceResponse:
    if places.get(place_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PLACE_NOT_FOUND)
    _ensure_category(categories, payload)

    place = places.update(place_id, payload)
    if place is None:
        # Deleted between the existence check and the write.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PLACE_NOT_FOUND)
    logger.info("Place updated: id=%s", place_id)
    return place


@router.delete("/{place_id}", response_model=PlaceDeletedResponse)
def delete_place(place_id: int, places: PlaceRepository = Depends(get_place_repository)) -> PlaceDeletedResponse:
    existing = places.get(place_id)
    if existing is None or not places.delete(place_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PLACE_NOT_FOUND)
    logger.info("Place deleted: id=%s", place_id)
    return PlaceDeletedResponse(message="Place deleted successfully", deleted_place=existing)
