from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import get_category_repository
from app.repositories.base import CategoryRepository
from app.schemas.categories import CategoryBrief, CategoryCreate, CategoryDeletedResponse, CategoryResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])

CATEGORY_NOT_FOUND = "Category not found"
DUPLICATE_NAME = "Category with this name already exists"


@router.get("", response_model=list[CategoryResponse])
def list_categories(
    categories: CategoryRepository = Depends(get_category_repository),
    include_places: bool = Query(default=False, alias="includePlaces"),
) -> list[CategoryResponse]:
    return categories.list(include_places=include_places)


@router.post("", response_model=CategoryResponse)
def create_category(
    payload: CategoryCreate,
    categories: CategoryRepository = Depends(get_category_repository),
) -> CategoryResponse:
    if categories.get_by_name(payload.name) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)
    category = categories.create(payload)
    logger.info("Category created: id=%s name=%r", category.id, category.name)
    return category


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    categories: CategoryRepository = Depends(get_category_repository),
    include_places: bool = Query(default=True, alias="includePlaces"),
) -> CategoryResponse:
    category = categories.get(category_id, include_places=include_places)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CATEGORY_NOT_FOUND)
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    payload: CategoryCreate,
    categories: CategoryRepository = Depends(get_category_repository),
) -> CategoryResponse:
    existing = categories.get(category_id)
    if not existing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CATEGORY_NOT_FOUND)

    if payload.name != existing.name and categories.get_by_name(payload.name) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_NAME)

    category = categories.update(category_id, payload)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CATEGORY_NOT_FOUND)
    return category


@router.delete("/{category_id}", response_model=CategoryDeletedResponse)
def delete_category(
    category_id: int,
    categories: CategoryRepository = Depends(get_category_repository),
) -> CategoryDeletedResponse:
    existing = categories.get(category_id)
    if existing is None or not categories.delete(category_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CATEGORY_NOT_FOUND)

    # Places that pointed here keep existing with categoryId = null.
    logger.info("Category deleted: id=%s", category_id)
    return CategoryDeletedResponse(
        message="Category deleted successfully",
        deleted_category=CategoryBrief(id=existing.id, name=existing.name, icon=existing.icon),
    )
