from abc import ABC, abstractmethod
from typing import List, Mapping, Optional, Sequence
from uuid import UUID

from concierge.domain.models import (
    ConversationSummary,
    ConversationTurn,
    NewKnowledgeFact,
    ResearchResult,
    Screenshot,
    UserProfile,
)
from concierge.models.conversation import MessageRole


class ConversationNotFoundError(LookupError):
    """Raised when a conversation's external identifier is unknown."""

    def __init__(self, conversation_id: UUID | str) -> None:
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class ConversationRepositoryInterface(ABC):
    """Persistence contract for conversations, messages and knowledge facts"""

    @abstractmethod
    async def create_conversation(
        self, conversation_id: UUID, user_id: int, topic: str
    ) -> ConversationSummary:
        ...

    @abstractmethod
    async def get_conversation_owner(self, conversation_id: UUID) -> int:
        """Return the owning user id, raising ConversationNotFoundError if absent."""

    @abstractmethod
    async def list_conversations(self, user_id: int) -> List[ConversationSummary]:
        ...

    @abstractmethod
    async def insert_message(
        self,
        conversation_id: UUID,
        role: MessageRole,
        content: str,
        *,
        screenshots: Sequence[Screenshot] = (),
        is_asking_for_more_information: bool = False,
    ) -> ConversationTurn:
        ...

    @abstractmethod
    async def fetch_messages(self, conversation_id: UUID) -> List[ConversationTurn]:
        ...

    @abstractmethod
    async def fetch_facts(self, user_id: int) -> List[str]:
        ...

    @abstractmethod
    async def insert_facts(self, user_id: int, facts: Sequence[NewKnowledgeFact]) -> None:
        ...

    @abstractmethod
    async def fetch_user_profile(self, user_id: int) -> Optional[UserProfile]:
        ...

    @abstractmethod
    async def update_user_profile(
        self, user_id: int, changes: Mapping[str, Optional[str]]
    ) -> Optional[UserProfile]:
        """Overwrite only the profile fields present in ``changes``."""


class SpeechToTextInterface(ABC):
    @abstractmethod
    async def transcribe(self, audio_bytes: bytes, mime_type: str) -> str:
        ...


class LanguageModelInterface(ABC):
    @abstractmethod
    async def complete(self, instructions: str, prompt: str) -> str:
        ...


class ResearchDelegateInterface(ABC):
    """Opaque, potentially slow web research capability."""

    @abstractmethod
    async def research(
        self, prompt: str, conversation_id: Optional[str] = None
    ) -> ResearchResult:
        ...


class ScreenshotCaptureInterface(ABC):
    @abstractmethod
    async def capture(self, url: str) -> str:
        """Return the captured image URL or raise."""
