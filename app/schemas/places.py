from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from app.schemas.base import ApiModel, optional_id, require_rating, require_text

_LETTER = re.compile(r"[^\W\d_]")


class PlaceCreate(ApiModel):
    """Full place payload; used for both POST and PUT (PUT is a full replace)."""

    name: Any = Field(default=None, validate_default=True)
    location: Any = Field(default=None, validate_default=True)
    rating: Any = Field(default=None, validate_default=True)
    description: Any = Field(default=None, validate_default=True)
    video_url: Any = None
    category_id: Any = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Any) -> str:
        v = require_text(v, "Name")
        if not _LETTER.search(v):
            raise ValueError("Name must contain at least one letter")
        return v

    @field_validator("location")
    @classmethod
    def _location(cls, v: Any) -> str:
        return require_text(v, "Location")

    @field_validator("rating")
    @classmethod
    def _rating(cls, v: Any) -> int:
        return require_rating(v)

    @field_validator("description")
    @classmethod
    def _description(cls, v: Any) -> str:
        return require_text(v, "Description")

    @field_validator("video_url")
    @classmethod
    def _video_url(cls, v: Any) -> str | None:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("VideoUrl must be a string")
        return v.strip() or None

    @field_validator("category_id")
    @classmethod
    def _category_id(cls, v: Any) -> int | None:
        return optional_id(v, "CategoryId")


class PlaceResponse(ApiModel):
    id: int
    name: str
    location: str
    rating: int
    description: str
    video_url: str | None = None
    category_id: int | None = None
    created_at: datetime


class PlaceBrief(ApiModel):
    id: int
    name: str
    location: str | None = None
    rating: int | None = None


class PlaceDeletedResponse(ApiModel):
    message: str
    deleted_place: PlaceResponse


class CategoryStats(ApiModel):
    category_id: int | None
    name: str | None
    count: int
    average_rating: float


class PlaceStatsResponse(ApiModel):
    total: int
    average_rating: float
    rating_distribution: dict[str, int]
    by_category: list[CategoryStats]
