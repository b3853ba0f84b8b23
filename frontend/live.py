from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections import deque
from typing import Any, Awaitable, Callable

import aiohttp

logger = logging.getLogger(__name__)

BASE_DELAY = 1.0
MAX_DELAY = 30.0
MAX_ATTEMPTS = 5
OUTBOX_SIZE = 100


def backoff_delay(attempt: int) -> float:
    return min(BASE_DELAY * 2 ** attempt, MAX_DELAY)


class RelayListener:
    """WebSocket client for the broadcast relay.

    Incoming JSON messages are passed to ``on_message``. Messages handed to
    ``send`` while the socket is down stay queued and go out after the next
    successful connect. After ``max_attempts`` failed reconnects in a row the
    listener gives up and the UI keeps working without live updates.
    """

    def __init__(
        self,
        url: str,
        on_message: Callable[[dict], Any],
        *,
        session_factory: Callable[[], Any] = aiohttp.ClientSession,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        max_attempts: int = MAX_ATTEMPTS,
        poll_interval: float = 0.5,
        outbox_size: int = OUTBOX_SIZE,
    ):
        self.url = url
        self.on_message = on_message
        self.session_factory = session_factory
        self.sleep = sleep
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval

        self.attempt = 0
        self.connected = False
        self.gave_up = False
        self._stopped = False
        self._outbox: deque[str] = deque(maxlen=outbox_size)
        self._thread: threading.Thread | None = None

    @property
    def pending(self) -> int:
        return len(self._outbox)

    def send(self, message: dict) -> None:
        if self.gave_up:
            logger.debug("Relay listener gave up, dropping %s", message.get("type"))
            return
        self._outbox.append(json.dumps(message))

    def stop(self) -> None:
        self._stopped = True

    def start_in_thread(self) -> threading.Thread:
        self._thread = threading.Thread(target=asyncio.run, args=(self.run(),), name="relay-listener", daemon=True)
        self._thread.start()
        return self._thread

    async def run(self) -> None:
        async with self.session_factory() as session:
            while not self._stopped:
                try:
                    async with session.ws_connect(self.url) as ws:
                        logger.info("Relay connected: %s", self.url)
                        self.attempt = 0
                        self.connected = True
                        await self._pump(ws)
                except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
                    logger.warning("Relay connection failed: %s", e)
                finally:
                    self.connected = False

                if self._stopped:
                    break
                if self.attempt >= self.max_attempts:
                    self.gave_up = True
                    self._outbox.clear()
                    logger.error("Relay unreachable after %s attempts, live updates disabled", self.attempt)
                    return

                delay = backoff_delay(self.attempt)
                self.attempt += 1
                logger.info("Reconnecting to relay in %.0fs (attempt %s/%s)", delay, self.attempt, self.max_attempts)
                await self.sleep(delay)

    async def _pump(self, ws) -> None:
        while not self._stopped:
            await self._flush(ws)
            try:
                msg = await ws.receive(timeout=self.poll_interval)
            except asyncio.TimeoutError:
                continue

            if msg.type == aiohttp.WSMsgType.TEXT:
                self._dispatch(msg.data)
            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING,
                              aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                logger.info("Relay closed the connection")
                return

    async def _flush(self, ws) -> None:
        while self._outbox:
            await ws.send_str(self._outbox[0])
            self._outbox.popleft()

    def _dispatch(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Malformed relay message: %.200r", raw)
            return
        if not isinstance(message, dict):
            return
        try:
            self.on_message(message)
        except Exception:
            logger.exception("Relay message handler failed")
