"""WebSocket endpoint backing the conversation rooms."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from concierge.services.notifications import (
    ERROR_EVENT,
    ROOM_JOINED_EVENT,
    NotificationChannel,
    error_event,
)

router = APIRouter(tags=["realtime"])

logger = logging.getLogger(__name__)

JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"


class WebSocketSubscriber:
    """Adapts a FastAPI websocket to the notification channel's subscriber protocol."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    async def send(self, event: str, payload: Mapping[str, Any]) -> None:
        await self._websocket.send_json({"event": event, "data": dict(payload)})


async def _reject(subscriber: WebSocketSubscriber, message: str) -> None:
    rejection = error_event(message)
    await subscriber.send(ERROR_EVENT, rejection.data)


@router.websocket("/ws")
async def realtime_channel(websocket: WebSocket) -> None:
    channel: NotificationChannel = websocket.app.state.services.notifications
    subscriber = WebSocketSubscriber(websocket)

    await websocket.accept()
    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await _reject(subscriber, "Malformed frame")
                continue

            if not isinstance(frame, dict):
                await _reject(subscriber, "Malformed frame")
                continue

            event = frame.get("event")
            room = frame.get("data")
            if not isinstance(room, str) or not room:
                await _reject(subscriber, "A conversation id is required")
                continue

            if event == JOIN_ROOM:
                await channel.join(room, subscriber)
                await subscriber.send(
                    ROOM_JOINED_EVENT, {"conversationId": room, "status": "success"}
                )
                logger.info("Websocket joined conversation room %s", room)
            elif event == LEAVE_ROOM:
                await channel.leave(room, subscriber)
                logger.info("Websocket left conversation room %s", room)
            else:
                await _reject(subscriber, f"Unknown event: {event}")
    except WebSocketDisconnect:
        logger.debug("Websocket disconnected")
    finally:
        await channel.disconnect(subscriber)
