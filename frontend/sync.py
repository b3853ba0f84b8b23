"""Client-side catalog state with offline support.

``PlacesStore`` keeps the last known place list, mirrors it into a JSON
file and queues writes made while offline. Replay happens in enqueue order
when the store goes back online; the last local write wins, there is no
reconciliation with changes other clients made in the meantime.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from frontend.api import APIError, PlacesAPI

logger = logging.getLogger(__name__)

Notifier = Callable[[dict], None]

SORT_KEYS = {"name", "rating", "location", "createdAt"}

RATING_ERROR = "Rating is required and must be an integer between 1 and 5"


def _rating(place: dict) -> int:
    value = place.get("rating")
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def check_rating(data: dict) -> None:
    """Reject the same ratings the server would, before a write is applied offline."""
    value = data.get("rating")
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise APIError(400, RATING_ERROR, {"errors": [RATING_ERROR]})


class OfflineCache:
    """JSON file holding ``{"places": [...], "pending": [...]}``."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def load(self) -> dict:
        empty = {"places": [], "pending": []}
        if not self.path.exists():
            return empty
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Offline cache unreadable, starting empty: %s", self.path, exc_info=True)
            return empty
        if not isinstance(data, dict):
            return empty
        return {
            "places": list(data.get("places") or []),
            "pending": list(data.get("pending") or []),
        }

    def save(self, places: list[dict], pending: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps({"places": places, "pending": pending}, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)


def visible_places(places: list[dict], *, search: str = "", min_rating: Optional[int] = None,
                   sort_by: str = "", sort_order: str = "asc") -> list[dict]:
    needle = (search or "").strip().lower()
    out = [
        p for p in places
        if (not needle or any(needle in str(p.get(f) or "").lower() for f in ("name", "location", "description")))
        and (min_rating is None or _rating(p) >= min_rating)
    ]
    if sort_by == "rating":
        out.sort(key=_rating, reverse=sort_order == "desc")
    elif sort_by in SORT_KEYS:
        out.sort(key=lambda p: (p.get(sort_by) is None, str(p.get(sort_by) or "")), reverse=sort_order == "desc")
    return out


class PlacesStore:
    def __init__(self, api: PlacesAPI, cache: OfflineCache | None = None,
                 notifier: Notifier | None = None, online: bool = True):
        self.api = api
        self.cache = cache
        self.notifier = notifier
        self.online = online
        self.error: str | None = None
        self.auto_refresh = False

        self._lock = threading.Lock()
        cached = cache.load() if cache else {"places": [], "pending": []}
        self.places: list[dict] = cached["places"]
        self.pending: list[dict] = cached["pending"]
        temp_ids = [p["id"] for p in self.places if isinstance(p.get("id"), int) and p["id"] < 0]
        self._next_temp_id = min(temp_ids, default=0) - 1

    # --- helpers ---

    def _persist(self) -> None:
        if self.cache is not None:
            self.cache.save(self.places, self.pending)

    def _notify(self, message: dict) -> None:
        if self.notifier is not None:
            self.notifier(message)

    def _index(self, place_id: int) -> int | None:
        for i, p in enumerate(self.places):
            if p.get("id") == place_id:
                return i
        return None

    def _put(self, place: dict, replace_id: int | None = None) -> None:
        idx = self._index(place["id"] if replace_id is None else replace_id)
        if idx is None:
            self.places.append(place)
        else:
            self.places[idx] = place

    def _drop(self, place_id: int) -> None:
        self.places = [p for p in self.places if p.get("id") != place_id]

    def get(self, place_id: int) -> dict | None:
        with self._lock:
            idx = self._index(place_id)
            return dict(self.places[idx]) if idx is not None else None

    # --- loading ---

    def load(self) -> list[dict]:
        if not self.online:
            return list(self.places)
        try:
            fresh = self.api.places()
        except APIError as e:
            self.error = e.message
            logger.warning("Loading places failed, using cached copy: %s", e)
            return list(self.places)

        with self._lock:
            self.places = list(fresh)
            self.error = None
            self._persist()
            return list(self.places)

    # --- writes ---

    def add_place(self, data: dict) -> dict:
        if self.online:
            created = self.api.create_place(data)
            with self._lock:
                self._put(created)
                self._persist()
            self._notify({"type": "update", "action": "add", "data": created})
            return created

        check_rating(data)
        with self._lock:
            temp_id = self._next_temp_id
            self._next_temp_id -= 1
            place = {
                "videoUrl": None,
                "categoryId": None,
                **data,
                "id": temp_id,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            }
            self.places.append(place)
            self.pending.append({"type": "add", "id": temp_id, "data": data})
            self._persist()
        return place

    def update_place(self, place_id: int, data: dict) -> dict:
        if self.online:
            updated = self.api.update_place(place_id, data)
            with self._lock:
                self._put(updated)
                self._persist()
            self._notify({"type": "update", "action": "refresh", "data": updated})
            return updated

        check_rating(data)
        with self._lock:
            idx = self._index(place_id)
            base = self.places[idx] if idx is not None else {}
            place = {**base, **data, "id": place_id}
            self._put(place)
            self.pending.append({"type": "update", "id": place_id, "data": data})
            self._persist()
        return place

    def delete_place(self, place_id: int) -> None:
        if self.online:
            self.api.delete_place(place_id)
            with self._lock:
                self._drop(place_id)
                self._persist()
            self._notify({"type": "update", "action": "delete", "id": place_id})
            return

        with self._lock:
            self._drop(place_id)
            self.pending.append({"type": "delete", "id": place_id})
            self._persist()

    # --- connectivity ---

    def set_online(self, online: bool) -> dict:
        self.online = online
        logger.info("Client is now %s", "online" if online else "offline")
        if online:
            return self.replay()
        return {"replayed": 0, "failed": 0}

    def replay(self) -> dict:
        """Send queued operations in order. Failures go back to the queue in enqueue order."""
        with self._lock:
            queue, self.pending = self.pending, []

        id_map: dict[int, int] = {}
        failed: list[dict] = []
        for op in queue:
            op = dict(op)
            if op.get("id") in id_map:
                op["id"] = id_map[op["id"]]

            if op["type"] != "add" and isinstance(op.get("id"), int) and op["id"] < 0:
                # The add that would give this place a server id has not gone through.
                failed.append(op)
                continue

            try:
                self._replay_one(op, id_map)
            except APIError as e:
                logger.warning("Replay of %s %s failed: %s", op["type"], op.get("id"), e)
                failed.append(op)

        with self._lock:
            self.pending = failed + self.pending
            self._persist()

        replayed = len(queue) - len(failed)
        if queue:
            logger.info("Offline queue replayed: ok=%s failed=%s", replayed, len(failed))
        return {"replayed": replayed, "failed": len(failed)}

    def _replay_one(self, op: dict, id_map: dict[int, int]) -> None:
        kind = op["type"]
        if kind == "add":
            created = self.api.create_place(op["data"])
            id_map[op["id"]] = created["id"]
            with self._lock:
                self._put(created, replace_id=op["id"])
            self._notify({"type": "update", "action": "add", "data": created})
        elif kind == "update":
            updated = self.api.update_place(op["id"], op["data"])
            with self._lock:
                self._put(updated)
            self._notify({"type": "update", "action": "refresh", "data": updated})
        elif kind == "delete":
            try:
                self.api.delete_place(op["id"])
            except APIError as e:
                if e.status_code != 404:
                    raise
                logger.info("Place %s already gone on the server", op["id"])
            self._notify({"type": "update", "action": "delete", "id": op["id"]})
        else:
            logger.warning("Dropping unknown queued operation: %r", op)

    # --- live updates ---

    def apply_relay_event(self, message: dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == "auto-refresh-status":
            self.auto_refresh = bool(message.get("enabled"))
            return
        if kind != "update":
            return

        action = message.get("action")
        with self._lock:
            if action == "add":
                place = message.get("data") or {}
                if "id" in place and self._index(place["id"]) is None:
                    self.places.append(place)
            elif action == "refresh":
                place = message.get("data") or {}
                if "id" in place:
                    self._put(place)
            elif action == "delete":
                self._drop(message.get("id"))
            else:
                logger.warning("Unknown relay action: %r", action)
                return
            self._persist()
