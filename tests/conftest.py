"""In-memory collaborators shared by the pipeline and API tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

import pytest

from concierge.application.interfaces import (
    ConversationNotFoundError,
    ConversationRepositoryInterface,
    LanguageModelInterface,
    ResearchDelegateInterface,
    ScreenshotCaptureInterface,
    SpeechToTextInterface,
)
from concierge.domain.models import (
    ConversationSummary,
    ConversationTurn,
    ResearchResult,
    UserProfile,
)
from concierge.models.conversation import MessageRole
from concierge.pipelines.conversation.instructions import (
    KNOWLEDGE_DEDUPLICATION_INSTRUCTIONS,
    KNOWLEDGE_EXTRACTION_INSTRUCTIONS,
)


class FakeLlm(LanguageModelInterface):
    """Answers each pipeline stage with a scripted reply."""

    def __init__(self) -> None:
        self.knowledge = '{"isRelevant": false, "content": null, "confidence_score": 0}'
        self.deduplication = '{"shouldInsert": false, "cleanContent": ""}'
        self.verification = "true"
        self.brief = "Category: Food\nThe user wants sushi in Lyon."
        self.answer = "<p>Try <a href='https://a.example/menu'>A</a></p>"
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple[str, str, str]] = []

    def _stage(self, instructions: str, prompt: str) -> str:
        if instructions == KNOWLEDGE_EXTRACTION_INSTRUCTIONS:
            return "knowledge"
        if instructions == KNOWLEDGE_DEDUPLICATION_INSTRUCTIONS:
            return "deduplication"
        if "You are in MODE 3." in prompt:
            return "verification"
        if "### RESEARCH FINDINGS ###" in prompt:
            return "answer"
        return "brief"

    async def complete(self, instructions: str, prompt: str) -> str:
        stage = self._stage(instructions, prompt)
        self.calls.append((stage, instructions, prompt))
        if stage in self.failures:
            raise self.failures[stage]
        return getattr(self, stage)

    def stages(self) -> List[str]:
        return [stage for stage, _, _ in self.calls]


class FakeRepository(ConversationRepositoryInterface):
    def __init__(self) -> None:
        self.conversations: Dict[UUID, Dict[str, Any]] = {}
        self.messages: Dict[UUID, List[ConversationTurn]] = {}
        self.facts: Dict[int, List[str]] = {}
        self.inserted_facts: List[tuple[int, str, float]] = []
        self.profiles: Dict[int, UserProfile] = {}
        self.fail_inserts = False
        self._clock = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def create_conversation(
        self, conversation_id: UUID, user_id: int, topic: str
    ) -> ConversationSummary:
        created_at = self._tick()
        self.conversations[conversation_id] = {
            "user_id": user_id,
            "topic": topic[:255],
            "created_at": created_at,
        }
        self.messages.setdefault(conversation_id, [])
        return ConversationSummary(uuid=conversation_id, topic=topic[:255], created_at=created_at)

    async def get_conversation_owner(self, conversation_id: UUID) -> int:
        if conversation_id not in self.conversations:
            raise ConversationNotFoundError(conversation_id)
        return self.conversations[conversation_id]["user_id"]

    async def list_conversations(self, user_id: int) -> List[ConversationSummary]:
        owned = [
            ConversationSummary(uuid=key, topic=value["topic"], created_at=value["created_at"])
            for key, value in self.conversations.items()
            if value["user_id"] == user_id
        ]
        return sorted(owned, key=lambda item: item.created_at, reverse=True)

    async def insert_message(
        self,
        conversation_id,
        role,
        content,
        *,
        screenshots=(),
        is_asking_for_more_information=False,
    ) -> ConversationTurn:
        if self.fail_inserts:
            raise RuntimeError("database unavailable")
        if conversation_id not in self.conversations:
            raise ConversationNotFoundError(conversation_id)
        turns = self.messages[conversation_id]
        turn = ConversationTurn(
            id=len(turns) + 1,
            role=role,
            content=content,
            is_asking_for_more_information=is_asking_for_more_information,
            created_at=self._tick(),
            screenshots=list(screenshots),
        )
        turns.append(turn)
        return turn

    async def fetch_messages(self, conversation_id: UUID) -> List[ConversationTurn]:
        if conversation_id not in self.conversations:
            raise ConversationNotFoundError(conversation_id)
        return list(self.messages[conversation_id])

    async def fetch_facts(self, user_id: int) -> List[str]:
        return list(self.facts.get(user_id, []))

    async def insert_facts(self, user_id: int, facts) -> None:
        for fact in facts:
            self.facts.setdefault(user_id, []).append(fact.content)
            self.inserted_facts.append((user_id, fact.content, fact.confidence_score))

    async def fetch_user_profile(self, user_id: int) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    async def update_user_profile(
        self, user_id: int, changes: Mapping[str, Optional[str]]
    ) -> Optional[UserProfile]:
        current = self.profiles.get(user_id, UserProfile())
        self.profiles[user_id] = current.model_copy(update=dict(changes))
        return self.profiles[user_id]

    def roles(self, conversation_id: UUID) -> List[MessageRole]:
        return [turn.role for turn in self.messages.get(conversation_id, [])]


class FakeResearch(ResearchDelegateInterface):
    def __init__(self) -> None:
        self.result = ResearchResult(
            response="Sushi Lyon at https://a.example/menu",
            sources=["https://a.example/menu"],
        )
        self.error: Optional[Exception] = None
        self.calls: List[tuple[str, Optional[str]]] = []

    async def research(self, prompt: str, conversation_id: Optional[str] = None) -> ResearchResult:
        self.calls.append((prompt, conversation_id))
        if self.error is not None:
            raise self.error
        return self.result


class FakeCapture(ScreenshotCaptureInterface):
    def __init__(self) -> None:
        self.failing: set[str] = set()
        self.calls: List[str] = []

    async def capture(self, url: str) -> str:
        self.calls.append(url)
        if url in self.failing:
            raise RuntimeError(f"cannot capture {url}")
        return f"https://cdn.example/{len(self.calls)}.png"


class FakeSpeechToText(SpeechToTextInterface):
    def __init__(self, transcript: str = "I want sushi in Lyon tonight") -> None:
        self.transcript = transcript
        self.error: Optional[Exception] = None
        self.calls: List[tuple[int, str]] = []

    async def transcribe(self, audio_bytes: bytes, mime_type: str) -> str:
        self.calls.append((len(audio_bytes), mime_type))
        if self.error is not None:
            raise self.error
        return self.transcript


class RecordingSubscriber:
    def __init__(self) -> None:
        self.events: List[tuple[str, Dict[str, Any]]] = []

    async def send(self, event: str, payload) -> None:
        self.events.append((event, dict(payload)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payloads(self, event: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def llm() -> FakeLlm:
    return FakeLlm()


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def research() -> FakeResearch:
    return FakeResearch()


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def speech_to_text() -> FakeSpeechToText:
    return FakeSpeechToText()


@pytest.fixture
def subscriber() -> RecordingSubscriber:
    return RecordingSubscriber()
