"""Pydantic schemas for conversation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from concierge.domain.models import ConversationSummary, ConversationTurn


class ConversationAccepted(BaseModel):
    """Acknowledgement returned before the pipeline runs."""

    conversationId: UUID
    initialMessage: str
    userId: int


class FollowUpRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Message cannot be empty")
        return cleaned


class FollowUpAccepted(BaseModel):
    conversationId: UUID
    message: str
    userId: int
    status: Literal["processing"] = "processing"


class ConversationResponse(BaseModel):
    conversationId: UUID
    topic: str
    createdAt: datetime

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> "ConversationResponse":
        return cls(
            conversationId=summary.uuid,
            topic=summary.topic,
            createdAt=summary.created_at,
        )


class ScreenshotResponse(BaseModel):
    originalUrl: str
    screenshotUrl: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    role: str
    content: str
    isAskingForMoreInformation: bool = False
    createdAt: Optional[datetime] = None
    screenshots: List[ScreenshotResponse] = Field(default_factory=list)

    @classmethod
    def from_turn(cls, turn: ConversationTurn) -> "MessageResponse":
        return cls(
            id=turn.id,
            role=turn.role.value,
            content=turn.content,
            isAskingForMoreInformation=turn.is_asking_for_more_information,
            createdAt=turn.created_at,
            screenshots=[
                ScreenshotResponse(
                    originalUrl=shot.original_url,
                    screenshotUrl=shot.screenshot_url,
                )
                for shot in turn.screenshots
            ],
        )


__all__ = [
    "ConversationAccepted",
    "ConversationResponse",
    "FollowUpAccepted",
    "FollowUpRequest",
    "MessageResponse",
    "ScreenshotResponse",
]
