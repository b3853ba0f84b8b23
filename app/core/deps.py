from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request

from app.repositories.backends import StorageBackend
from app.repositories.base import CategoryRepository, PlaceRepository, Repositories, ReviewRepository


def get_backend(request: Request) -> StorageBackend:
    return request.app.state.backend


def get_repositories(backend: StorageBackend = Depends(get_backend)) -> Generator[Repositories, None, None]:
    with backend.open() as repos:
        yield repos


def get_place_repository(repos: Repositories = Depends(get_repositories)) -> PlaceRepository:
    return repos.places


def get_category_repository(repos: Repositories = Depends(get_repositories)) -> CategoryRepository:
    return repos.categories


def get_review_repository(repos: Repositories = Depends(get_repositories)) -> ReviewRepository:
    return repos.reviews
