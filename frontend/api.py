from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, Dict
import requests


@dataclass
class APIError(Exception):
    status_code: int
    message: str
    details: Any = None

    def __str__(self) -> str:
        return f"{self.status_code}: {self.message}"


def _error_message(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        if payload.get("error"):
            return str(payload["error"])
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            return "; ".join(str(e) for e in errors)
    return f"HTTP {status_code}"


class PlacesAPI:
    def __init__(self, base_url: str, timeout: float = 20, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {"Accept": "application/json"}

    def request(self, method: str, path: str, *,
                params: Optional[dict] = None,
                json: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(
                method=method.upper(),
                url=url,
                headers=self._headers(),
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise APIError(0, f"Network error: {e}") from e

        # JSON is expected, plain text is tolerated
        try:
            payload = resp.json()
        except ValueError:
            payload = resp.text

        if resp.status_code >= 400:
            raise APIError(resp.status_code, _error_message(payload, resp.status_code), payload)

        return payload

    @staticmethod
    def _clean(params: dict) -> dict:
        return {k: v for k, v in params.items() if v not in (None, "", [])}

    # --- Places ---
    def places(self, *, category_id: int | None = None, min_rating: int | None = None,
               search: str | None = None, sort_by: str | None = None, sort_order: str | None = None,
               limit: int | None = None, offset: int | None = None) -> list[dict]:
        return self.request("GET", "/places", params=self._clean({
            "categoryId": category_id, "minRating": min_rating, "search": search,
            "sortBy": sort_by, "sortOrder": sort_order, "limit": limit, "offset": offset,
        }))

    def place(self, place_id: int) -> dict:
        return self.request("GET", f"/places/{place_id}")

    def create_place(self, data: dict) -> dict:
        return self.request("POST", "/places", json=data)

    def update_place(self, place_id: int, data: dict) -> dict:
        return self.request("PUT", f"/places/{place_id}", json=data)

    def delete_place(self, place_id: int) -> dict:
        return self.request("DELETE", f"/places/{place_id}")

    def place_stats(self) -> dict:
        return self.request("GET", "/places/stats")

    # --- Categories ---
    def categories(self, include_places: bool = False) -> list[dict]:
        return self.request("GET", "/categories", params={"includePlaces": str(include_places).lower()})

    def category(self, category_id: int, include_places: bool = True) -> dict:
        return self.request("GET", f"/categories/{category_id}",
                            params={"includePlaces": str(include_places).lower()})

    def create_category(self, name: str, icon: str | None = None) -> dict:
        return self.request("POST", "/categories", json=self._clean({"name": name, "icon": icon}))

    def update_category(self, category_id: int, name: str, icon: str | None = None) -> dict:
        return self.request("PUT", f"/categories/{category_id}", json=self._clean({"name": name, "icon": icon}))

    def delete_category(self, category_id: int) -> dict:
        return self.request("DELETE", f"/categories/{category_id}")

    # --- Reviews ---
    def reviews(self, place_id: int | None = None, min_rating: int | None = None) -> list[dict]:
        return self.request("GET", "/reviews", params=self._clean({"placeId": place_id, "minRating": min_rating}))

    def review(self, review_id: int) -> dict:
        return self.request("GET", f"/reviews/{review_id}")

    def create_review(self, place_id: int, content: str, rating: int, author: str) -> dict:
        return self.request("POST", "/reviews", json={
            "placeId": place_id, "content": content, "rating": rating, "author": author,
        })

    def update_review(self, review_id: int, content: str, rating: int, author: str) -> dict:
        return self.request("PUT", f"/reviews/{review_id}", json={
            "content": content, "rating": rating, "author": author,
        })

    def delete_review(self, review_id: int) -> dict:
        return self.request("DELETE", f"/reviews/{review_id}")
