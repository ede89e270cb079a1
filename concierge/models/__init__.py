"""SQLAlchemy models for the conversation store."""

from .base import Base
from .conversation import (  # noqa: F401
    Conversation,
    ConversationMessage,
    MessageRole,
    MessageScreenshot,
)
from .knowledge import KnowledgeFact  # noqa: F401
from .user import User  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Conversation",
    "ConversationMessage",
    "MessageRole",
    "MessageScreenshot",
    "KnowledgeFact",
]
