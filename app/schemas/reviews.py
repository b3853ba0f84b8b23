from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from app.schemas.base import ApiModel, require_rating, require_text
from app.schemas.places import PlaceBrief


class ReviewUpdate(ApiModel):
    content: Any = Field(default=None, validate_default=True)
    rating: Any = Field(default=None, validate_default=True)
    author: Any = Field(default=None, validate_default=True)

    @field_validator("content")
    @classmethod
    def _content(cls, v: Any) -> str:
        return require_text(v, "Content")

    @field_validator("rating")
    @classmethod
    def _rating(cls, v: Any) -> int:
        return require_rating(v)

    @field_validator("author")
    @classmethod
    def _author(cls, v: Any) -> str:
        return require_text(v, "Author")


class ReviewCreate(ReviewUpdate):
    place_id: Any = Field(default=None, validate_default=True)

    @field_validator("place_id")
    @classmethod
    def _place_id(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, int):
            raise ValueError("PlaceId is required and must be a number")
        return v


class ReviewResponse(ApiModel):
    id: int
    content: str
    rating: int
    author: str
    place_id: int
    created_at: datetime
    place: PlaceBrief | None = None


class ReviewDeletedResponse(ApiModel):
    message: str
    deleted_review: ReviewResponse
