from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from app.schemas.base import ApiModel, require_text
from app.schemas.places import PlaceBrief


class CategoryCreate(ApiModel):
    name: Any = Field(default=None, validate_default=True)
    icon: Any = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: Any) -> str:
        return require_text(v, "Name")

    @field_validator("icon")
    @classmethod
    def _icon(cls, v: Any) -> str | None:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Icon must be a string")
        return v.strip() or None


class CategoryResponse(ApiModel):
    id: int
    name: str
    icon: str | None = None
    places: list[PlaceBrief] | None = None


class CategoryBrief(ApiModel):
    id: int
    name: str
    icon: str | None = None


class CategoryDeletedResponse(ApiModel):
    message: str
    deleted_category: CategoryBrief
