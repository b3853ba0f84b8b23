"""Broadcast relay for live catalog updates.

In-memory WebSocket hub for a single process. Every connection gets a
bounded outgoing queue drained by its own sender task; when a slow client
lets its queue fill up, the oldest pending event is dropped so that fresh
state wins. Events are relayed as-is, there is no ordering guarantee
across clients and no acknowledgement.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Protocol

import anyio
from pydantic import ValidationError

from app.core.config import Settings
from app.models.enums import UpdateAction
from app.repositories.backends import StorageBackend
from app.schemas.places import PlaceCreate

logger = logging.getLogger(__name__)


class RelaySocket(Protocol):
    async def send_text(self, data: str) -> None: ...


class RelayPersistenceError(Exception):
    pass


@dataclass(eq=False)
class RelayConnection:
    socket: RelaySocket
    queue: asyncio.Queue
    sender: asyncio.Task | None = None
    dropped: int = 0
    closed: bool = field(default=False)


def _message_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RelayPersistenceError(f"Invalid place id: {value!r}")
    return value


class RelayHub:
    """Tracks relay connections, relays update events and runs the auto-refresh generator."""

    def __init__(
        self,
        backend: StorageBackend,
        *,
        tick_seconds: float = 3.0,
        queue_size: int = 100,
        auto_add_probability: float = 0.3,
        persist_updates: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        self.backend = backend
        self.tick_seconds = tick_seconds
        self.queue_size = queue_size
        self.auto_add_probability = auto_add_probability
        self.persist_updates = persist_updates
        self.rng = rng or random.Random()

        self.auto_refresh_enabled = False
        self._auto_task: asyncio.Task | None = None
        self._generated = 0
        self._lock = asyncio.Lock()
        self._connections: set[RelayConnection] = set()

    @classmethod
    def from_settings(cls, backend: StorageBackend, settings: Settings) -> "RelayHub":
        return cls(
            backend,
            tick_seconds=settings.relay_tick_seconds,
            queue_size=settings.relay_queue_size,
            auto_add_probability=settings.relay_auto_add_probability,
            persist_updates=settings.relay_persist_updates,
        )

    @property
    def client_count(self) -> int:
        return len(self._connections)

    @property
    def auto_refresh_running(self) -> bool:
        return self._auto_task is not None and not self._auto_task.done()

    # --- connections ---

    async def register(self, socket: RelaySocket) -> RelayConnection:
        """Start delivering to an already accepted socket and greet it."""
        conn = RelayConnection(socket=socket, queue=asyncio.Queue(maxsize=self.queue_size))
        self._enqueue(conn, json.dumps({"type": "connected"}))

        async with self._lock:
            self._connections.add(conn)
            total = len(self._connections)
        conn.sender = asyncio.create_task(self._pump(conn))
        logger.info("Relay client connected (%s total)", total)

        if self.auto_refresh_enabled:
            self._start_auto_refresh()
        return conn

    async def unregister(self, conn: RelayConnection) -> None:
        conn.closed = True
        async with self._lock:
            self._connections.discard(conn)
            remaining = len(self._connections)

        if conn.sender is not None and conn.sender is not asyncio.current_task():
            conn.sender.cancel()
            with suppress(asyncio.CancelledError):
                await conn.sender
        logger.info("Relay client disconnected (%s left)", remaining)

        if remaining == 0:
            self._stop_auto_refresh()

    def _enqueue(self, conn: RelayConnection, text: str) -> None:
        try:
            conn.queue.put_nowait(text)
        except asyncio.QueueFull:
            with suppress(asyncio.QueueEmpty):
                conn.queue.get_nowait()
            conn.dropped += 1
            logger.warning("Relay queue full, dropped oldest event (dropped=%s)", conn.dropped)
            conn.queue.put_nowait(text)

    async def _pump(self, conn: RelayConnection) -> None:
        while True:
            text = await conn.queue.get()
            try:
                await conn.socket.send_text(text)
            except Exception:
                logger.warning("Relay send failed, detaching client", exc_info=True)
                async with self._lock:
                    self._connections.discard(conn)
                return

    async def broadcast(self, message: dict | str, *, exclude: RelayConnection | None = None) -> int:
        text = message if isinstance(message, str) else json.dumps(message)
        async with self._lock:
            targets = [c for c in self._connections if c is not exclude and not c.closed]
        for conn in targets:
            self._enqueue(conn, text)
        return len(targets)

    # --- inbound messages ---

    async def handle_message(self, conn: RelayConnection, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Malformed relay message ignored: %.200r", raw)
            return
        if not isinstance(message, dict):
            logger.warning("Relay message is not an object: %.200r", raw)
            return

        kind = message.get("type")
        if kind == "toggle-auto-refresh":
            await self.set_auto_refresh(message.get("enabled") is True)
        elif kind == "update":
            await self._relay_update(conn, message, raw)
        else:
            logger.warning("Unknown relay message type: %r", kind)

    async def set_auto_refresh(self, enabled: bool) -> None:
        self.auto_refresh_enabled = enabled
        logger.info("Auto-refresh toggled: %s", enabled)
        if enabled:
            self._start_auto_refresh()
        else:
            self._stop_auto_refresh()
        await self.broadcast({"type": "auto-refresh-status", "enabled": enabled})

    async def _relay_update(self, conn: RelayConnection, message: dict, raw: str) -> None:
        try:
            action = UpdateAction(message.get("action"))
        except ValueError:
            logger.warning("Unknown update action: %r", message.get("action"))
            return

        if self.persist_updates:
            try:
                await anyio.to_thread.run_sync(self._persist, action, message)
            except Exception:
                logger.exception("Relay persistence failed for %s, event not broadcast", action.value)
                return

        sent = await self.broadcast(raw, exclude=conn)
        logger.debug("Relayed %s to %s client(s)", action.value, sent)

    def _persist(self, action: UpdateAction, message: dict) -> None:
        with self.backend.open() as repos:
            if action == UpdateAction.add:
                repos.places.create(PlaceCreate.model_validate(message.get("data") or {}))
            elif action == UpdateAction.refresh:
                data = message.get("data") or {}
                place_id = _message_id(data.get("id"))
                try:
                    payload = PlaceCreate.model_validate(data)
                except ValidationError as e:
                    raise RelayPersistenceError(str(e)) from e
                if repos.places.update(place_id, payload) is None:
                    raise RelayPersistenceError(f"Place {place_id} not found")
            elif action == UpdateAction.delete:
                place_id = _message_id(message.get("id"))
                if not repos.places.delete(place_id):
                    raise RelayPersistenceError(f"Place {place_id} not found")

    # --- auto-refresh generator ---

    def _start_auto_refresh(self) -> None:
        if not self.auto_refresh_running:
            self._auto_task = asyncio.create_task(self._auto_refresh_loop())

    def _stop_auto_refresh(self) -> None:
        if self._auto_task is not None:
            self._auto_task.cancel()
            self._auto_task = None

    async def _auto_refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            try:
                await self.tick()
            except Exception:
                logger.exception("Auto-refresh tick failed")

    async def tick(self) -> dict | None:
        """Run one generator step; returns the broadcast event, if any."""
        if not self.auto_refresh_enabled or not self._connections:
            return None
        event = await anyio.to_thread.run_sync(self._generate_change)
        if event is not None:
            await self.broadcast(event)
        return event

    def _generate_change(self) -> dict | None:
        rng = self.rng
        with self.backend.open() as repos:
            if rng.random() < self.auto_add_probability:
                self._generated += 1
                n = self._generated
                place = repos.places.create(
                    PlaceCreate(
                        name=f"Auto Generated Place {n}",
                        location=f"Location {rng.randint(0, 99)}",
                        rating=rng.randint(1, 5),
                        description=f"This is an automatically generated place {n}",
                    )
                )
                action = UpdateAction.add
            else:
                existing = repos.places.list()
                if not existing:
                    return None
                target = rng.choice(existing)
                place = repos.places.update(
                    target.id,
                    PlaceCreate(
                        name=target.name,
                        location=f"Updated Location {rng.randint(0, 99)}",
                        rating=rng.randint(1, 5),
                        description=target.description,
                        video_url=target.video_url,
                        category_id=target.category_id,
                    ),
                )
                if place is None:
                    return None
                action = UpdateAction.refresh

        return {"type": "update", "action": action.value, "data": place.model_dump(mode="json", by_alias=True)}

    async def shutdown(self) -> None:
        self._stop_auto_refresh()
        async with self._lock:
            conns = list(self._connections)
            self._connections.clear()
        senders = [c.sender for c in conns if c.sender is not None]
        for conn in conns:
            conn.closed = True
        for task in senders:
            task.cancel()
        await asyncio.gather(*senders, return_exceptions=True)
