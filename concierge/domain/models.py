from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from concierge.models.conversation import MessageRole


class Screenshot(BaseModel):
    """Captured image for one link found in an assistant answer."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    original_url: str = Field(alias="originalUrl")
    screenshot_url: str = Field(alias="screenshotUrl")


class ConversationTurn(BaseModel):
    """One persisted message as seen by the pipeline and the replay API."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    role: MessageRole
    content: str
    is_asking_for_more_information: bool = False
    created_at: Optional[datetime] = None
    screenshots: List[Screenshot] = Field(default_factory=list)


class ConversationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    uuid: UUID
    topic: str
    created_at: datetime


PROFILE_FIELDS = ("city", "postal_code", "country")


class UserProfile(BaseModel):
    """Profile fields used to personalize prompts."""

    model_config = ConfigDict(from_attributes=True)

    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class NewKnowledgeFact(BaseModel):
    content: str
    confidence_score: float = Field(ge=0.0, le=1.0)


class ResearchResult(BaseModel):
    """Findings returned by the research agent."""

    response: str
    sources: List[str] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def missing_sources_are_empty(cls, value):
        return [] if value is None else value

    def as_text(self) -> str:
        """Research answer followed by a bullet list of its sources."""

        if not self.sources:
            return self.response
        bullets = "\n".join(f"- {source}" for source in self.sources)
        return f"{self.response}\n\nSources:\n{bullets}"
