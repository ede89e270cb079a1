"""Room-scoped realtime notifications for running conversation pipelines.

A room is named after a conversation id. Clients join rooms over the
``/ws`` socket and receive progress, action, final and error events while the
detached pipeline for that conversation runs. Delivery is best effort and
at most once: events for a room without members are dropped and nothing is
replayed on reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Protocol

from concierge.domain.models import Screenshot
from concierge.telemetry import NOTIFICATION_EVENTS

logger = logging.getLogger(__name__)

PROGRESS_EVENT = "agent-progress"
FINAL_EVENT = "agent-response"
ACTION_EVENT = "agent-action"
ERROR_EVENT = "agent-error"
ROOM_JOINED_EVENT = "room-joined"


class AgentAction(str, Enum):
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    VISITING = "visiting"
    COMPLETED = "completed"


class Subscriber(Protocol):
    """A live connection able to receive named events."""

    async def send(self, event: str, payload: Mapping[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class RealtimeEvent:
    event: str
    data: dict[str, Any] = field(default_factory=dict)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def progress_event(message: str) -> RealtimeEvent:
    return RealtimeEvent(
        event=PROGRESS_EVENT,
        data={"type": "progress", "message": message, "timestamp": _timestamp()},
    )


def final_event(
    message: str,
    *,
    is_asking_for_more_information: bool,
    screenshots: Iterable[Screenshot] = (),
) -> RealtimeEvent:
    return RealtimeEvent(
        event=FINAL_EVENT,
        data={
            "type": "final",
            "message": message,
            "timestamp": _timestamp(),
            "isAskingForMoreInformation": is_asking_for_more_information,
            "screenshotsWithUrls": [
                shot.model_dump(by_alias=True) for shot in screenshots
            ],
        },
    )


def action_event(
    action: AgentAction,
    description: str,
    metadata: Mapping[str, Any] | None = None,
) -> RealtimeEvent:
    details: dict[str, Any] = {"description": description}
    if metadata:
        details["metadata"] = dict(metadata)
    return RealtimeEvent(
        event=ACTION_EVENT,
        data={
            "type": "agent-action",
            "action": AgentAction(action).value,
            "details": details,
            "timestamp": _timestamp(),
        },
    )


def error_event(message: str, *, event: str = ERROR_EVENT) -> RealtimeEvent:
    return RealtimeEvent(event=event, data={"error": message, "timestamp": _timestamp()})


class NotificationChannel:
    """Registry of room memberships plus best-effort event fan-out.

    One instance is created per process and handed to both the websocket
    router and the orchestrator.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, set[Subscriber]] = {}
        self._lock = asyncio.Lock()

    async def join(self, room: str, subscriber: Subscriber) -> None:
        if not room:
            return
        async with self._lock:
            self._rooms.setdefault(room, set()).add(subscriber)
        logger.debug("Subscriber joined room %s", room)

    async def leave(self, room: str, subscriber: Subscriber) -> None:
        if not room:
            return
        async with self._lock:
            self._discard(room, subscriber)
        logger.debug("Subscriber left room %s", room)

    async def disconnect(self, subscriber: Subscriber) -> None:
        """Remove a subscriber from every room it belongs to."""

        async with self._lock:
            for room in list(self._rooms):
                self._discard(room, subscriber)

    def members(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def emit_progress(self, room: str | None, message: str) -> None:
        await self.publish(room, progress_event(message))

    async def emit_final(
        self,
        room: str | None,
        message: str,
        *,
        is_asking_for_more_information: bool,
        screenshots: Iterable[Screenshot] = (),
    ) -> None:
        await self.publish(
            room,
            final_event(
                message,
                is_asking_for_more_information=is_asking_for_more_information,
                screenshots=screenshots,
            ),
        )

    async def emit_action(
        self,
        room: str | None,
        action: AgentAction,
        description: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> None:
        await self.publish(room, action_event(action, description, metadata))

    async def emit_error(
        self, room: str | None, message: str, *, event: str = ERROR_EVENT
    ) -> None:
        await self.publish(room, error_event(message, event=event))

    async def publish(self, room: str | None, event: RealtimeEvent) -> None:
        """Send ``event`` to the current members of ``room``; never raises."""

        if not room:
            return

        async with self._lock:
            recipients = list(self._rooms.get(room, ()))

        NOTIFICATION_EVENTS.labels(event=event.event).inc()
        if not recipients:
            logger.debug("Dropping %s for room %s: no subscribers", event.event, room)
            return

        failed: list[Subscriber] = []
        for subscriber in recipients:
            try:
                await subscriber.send(event.event, event.data)
            except Exception as exc:
                logger.warning(
                    "Failed to deliver %s to a subscriber of room %s: %s",
                    event.event,
                    room,
                    exc,
                )
                failed.append(subscriber)

        for subscriber in failed:
            await self.disconnect(subscriber)

    def _discard(self, room: str, subscriber: Subscriber) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(subscriber)
        if not members:
            del self._rooms[room]


__all__ = [
    "ACTION_EVENT",
    "ERROR_EVENT",
    "FINAL_EVENT",
    "PROGRESS_EVENT",
    "ROOM_JOINED_EVENT",
    "AgentAction",
    "NotificationChannel",
    "RealtimeEvent",
    "Subscriber",
    "action_event",
    "error_event",
    "final_event",
    "progress_event",
]
