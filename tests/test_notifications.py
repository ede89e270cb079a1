from __future__ import annotations

import pytest

from concierge.domain.models import Screenshot
from concierge.services.notifications import (
    ACTION_EVENT,
    ERROR_EVENT,
    FINAL_EVENT,
    PROGRESS_EVENT,
    AgentAction,
    NotificationChannel,
)


class BrokenSubscriber:
    def __init__(self) -> None:
        self.attempts = 0

    async def send(self, event, payload) -> None:
        self.attempts += 1
        raise ConnectionError("socket closed")


@pytest.mark.asyncio
async def test_progress_reaches_every_member_of_the_room(subscriber):
    channel = NotificationChannel()
    other = type(subscriber)()
    await channel.join("room-1", subscriber)
    await channel.join("room-1", other)

    await channel.emit_progress("room-1", "Processing your request...")

    for member in (subscriber, other):
        (payload,) = member.payloads(PROGRESS_EVENT)
        assert payload["type"] == "progress"
        assert payload["message"] == "Processing your request..."
        assert payload["timestamp"].endswith("+00:00")


@pytest.mark.asyncio
async def test_events_are_scoped_to_their_room(subscriber):
    channel = NotificationChannel()
    outsider = type(subscriber)()
    await channel.join("room-1", subscriber)
    await channel.join("room-2", outsider)

    await channel.emit_error("room-1", "boom")

    assert subscriber.names() == [ERROR_EVENT]
    assert outsider.events == []


@pytest.mark.asyncio
async def test_missing_room_is_a_no_op(subscriber):
    channel = NotificationChannel()
    await channel.join("room-1", subscriber)

    await channel.emit_progress(None, "ignored")
    await channel.emit_final("", "ignored", is_asking_for_more_information=False)

    assert subscriber.events == []


@pytest.mark.asyncio
async def test_join_is_idempotent_and_leave_removes_member(subscriber):
    channel = NotificationChannel()
    await channel.join("room-1", subscriber)
    await channel.join("room-1", subscriber)
    assert channel.members("room-1") == 1

    await channel.emit_progress("room-1", "once")
    assert len(subscriber.events) == 1

    await channel.leave("room-1", subscriber)
    await channel.emit_progress("room-1", "after leave")
    assert len(subscriber.events) == 1
    assert channel.members("room-1") == 0


@pytest.mark.asyncio
async def test_failed_subscriber_is_dropped_and_others_still_receive(subscriber):
    channel = NotificationChannel()
    broken = BrokenSubscriber()
    await channel.join("room-1", broken)
    await channel.join("room-1", subscriber)

    await channel.emit_progress("room-1", "first")
    await channel.emit_progress("room-1", "second")

    assert [p["message"] for p in subscriber.payloads(PROGRESS_EVENT)] == ["first", "second"]
    assert broken.attempts == 1
    assert channel.members("room-1") == 1


@pytest.mark.asyncio
async def test_final_payload_carries_screenshots_with_camel_case_keys(subscriber):
    channel = NotificationChannel()
    await channel.join("room-1", subscriber)

    await channel.emit_final(
        "room-1",
        "<p>Done</p>",
        is_asking_for_more_information=False,
        screenshots=[Screenshot(original_url="https://a.example", screenshot_url="https://cdn/a.png")],
    )

    (payload,) = subscriber.payloads(FINAL_EVENT)
    assert payload["type"] == "final"
    assert payload["isAskingForMoreInformation"] is False
    assert payload["screenshotsWithUrls"] == [
        {"originalUrl": "https://a.example", "screenshotUrl": "https://cdn/a.png"}
    ]


@pytest.mark.asyncio
async def test_action_payload_nests_description_and_metadata(subscriber):
    channel = NotificationChannel()
    await channel.join("room-1", subscriber)

    await channel.emit_action("room-1", AgentAction.COMPLETED, "Research finished", {"sources": 3})

    (payload,) = subscriber.payloads(ACTION_EVENT)
    assert payload["type"] == "agent-action"
    assert payload["action"] == "completed"
    assert payload["details"] == {"description": "Research finished", "metadata": {"sources": 3}}


@pytest.mark.asyncio
async def test_disconnect_removes_subscriber_from_all_rooms(subscriber):
    channel = NotificationChannel()
    await channel.join("room-1", subscriber)
    await channel.join("room-2", subscriber)

    await channel.disconnect(subscriber)

    assert channel.members("room-1") == 0
    assert channel.members("room-2") == 0
