from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for request/response bodies: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def require_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} is required and must be a non-empty string")
    return value.strip()


def require_rating(value: Any) -> int:
    # bool is an int subclass; integral floats (4.0) are accepted like JSON numbers.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Rating is required and must be an integer between 1 and 5")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("Rating is required and must be an integer between 1 and 5")
    if not 1 <= value <= 5:
        raise ValueError("Rating is required and must be an integer between 1 and 5")
    return int(value)


def optional_id(value: Any, label: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be a number")
    return value
