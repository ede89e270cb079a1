"""Pydantic schemas acting as views in the MVC architecture."""

from .common import ErrorResponse
from .conversations import (
    ConversationAccepted,
    ConversationResponse,
    FollowUpAccepted,
    FollowUpRequest,
    MessageResponse,
)
from .knowledge import KnowledgeFactsResponse, KnowledgeRequest, KnowledgeResponse
from .users import UserSettings, UserSettingsResponse

__all__ = [
    "ConversationAccepted",
    "ConversationResponse",
    "ErrorResponse",
    "FollowUpAccepted",
    "FollowUpRequest",
    "KnowledgeFactsResponse",
    "KnowledgeRequest",
    "KnowledgeResponse",
    "MessageResponse",
    "UserSettings",
    "UserSettingsResponse",
]
