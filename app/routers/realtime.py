from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.relay import RelayHub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


def _frame_text(message: dict) -> str | None:
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is None:
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Binary relay frame is not UTF-8, ignored (%s bytes)", len(data))
        return None


@router.websocket("/ws")
async def relay_socket(websocket: WebSocket) -> None:
    hub: RelayHub = websocket.app.state.relay
    await websocket.accept()
    conn = await hub.register(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = _frame_text(message)
            if raw is not None:
                await hub.handle_message(conn, raw)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.unregister(conn)
