from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import get_place_repository, get_review_repository
from app.repositories.base import PlaceRepository, ReviewRepository
from app.routers.places import PLACE_NOT_FOUND
from app.schemas.reviews import ReviewCreate, ReviewDeletedResponse, ReviewResponse, ReviewUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])

REVIEW_NOT_FOUND = "Review not found"


@router.get("", response_model=list[ReviewResponse])
def list_reviews(
    reviews: ReviewRepository = Depends(get_review_repository),
    place_id: int | None = Query(default=None, alias="placeId"),
    min_rating: int | None = Query(default=None, alias="minRating", ge=1, le=5),
) -> list[ReviewResponse]:
    return reviews.list(place_id=place_id, min_rating=min_rating)


@router.post("", response_model=ReviewResponse)
def create_review(
    payload: ReviewCreate,
    reviews: ReviewRepository = Depends(get_review_repository),
    places: PlaceRepository = Depends(get_place_repository),
) -> ReviewResponse:
    if places.get(payload.place_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PLACE_NOT_FOUND)

    review = reviews.create(payload)
    logger.info("Review created: id=%s place_id=%s", review.id, review.place_id)
    return review


@router.get("/{review_id}", response_model=ReviewResponse)
def get_review(review_id: int, reviews: ReviewRepository = Depends(get_review_repository)) -> ReviewResponse:
    review = reviews.get(review_id)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=REVIEW_NOT_FOUND)
    return review


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    reviews: ReviewRepository = Depends(get_review_repository),
) -> ReviewResponse:
    # placeId in the body, if any, is ignored: a review never moves to another place.
    review = reviews.update(review_id, payload)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=REVIEW_NOT_FOUND)
    return review


@router.delete("/{review_id}", response_model=ReviewDeletedResponse)
def delete_review(review_id: int, reviews: ReviewRepository = Depends(get_review_repository)) -> ReviewDeletedResponse:
    existing = reviews.get(review_id)
    if existing is None or not reviews.delete(review_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=REVIEW_NOT_FOUND)
    return ReviewDeletedResponse(message="Review deleted successfully", deleted_review=existing)
