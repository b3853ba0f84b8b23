from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INVALID_BODY = "Invalid request data"
_VALUE_ERROR_PREFIX = "Value error, "


class ValidationFailed(Exception):
    """Domain-level validation error raised after the body parsed (e.g. dangling foreign key)."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def validation_messages(errors: list[dict]) -> list[str]:
    """Flatten pydantic error dicts into human-readable strings (order kept, no duplicates)."""
    messages: list[str] = []
    for err in errors:
        loc = tuple(err.get("loc") or ())
        msg = str(err.get("msg") or "Invalid value")
        if msg.startswith(_VALUE_ERROR_PREFIX):
            msg = msg[len(_VALUE_ERROR_PREFIX):]
        elif loc[:1] == ("body",) and (len(loc) == 1 or err.get("type") == "json_invalid"):
            msg = INVALID_BODY
        elif loc[:1] == ("query",) and len(loc) > 1:
            msg = f"{loc[-1]}: {msg}"
        if msg not in messages:
            messages.append(msg)
    return messages


async def _validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = list(exc.errors())
    if any(tuple(e.get("loc") or ())[:1] == ("path",) for e in errors):
        # Non-numeric ids never match a stored entity.
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Not found"})

    messages = validation_messages(errors)
    logger.info("Validation failed for %s %s: %s", request.method, request.url.path, messages)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": messages})


async def _validation_failed_handler(request: Request, exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": exc.errors})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(ValidationFailed, _validation_failed_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
