from typing import List, Mapping, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from concierge.application.interfaces import (
    ConversationNotFoundError,
    ConversationRepositoryInterface,
)
from concierge.domain.models import (
    ConversationSummary,
    ConversationTurn,
    NewKnowledgeFact,
    PROFILE_FIELDS,
    Screenshot,
    UserProfile,
)
from concierge.models.conversation import (
    Conversation,
    ConversationMessage,
    MessageRole,
    MessageScreenshot,
)
from concierge.models.knowledge import KnowledgeFact
from concierge.models.user import User


class SQLAlchemyConversationRepository(ConversationRepositoryInterface):
    """SQLAlchemy implementation of the conversation store.

    Each call opens its own short-lived session so the repository can be shared
    by concurrently running pipelines.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_conversation(
        self, conversation_id: UUID, user_id: int, topic: str
    ) -> ConversationSummary:
        async with self._session_factory() as session:
            db_conversation = Conversation(
                uuid=conversation_id,
                user_id=user_id,
                topic=topic[:255],
            )
            session.add(db_conversation)
            await session.commit()
            await session.refresh(db_conversation)
            return ConversationSummary.model_validate(db_conversation)

    async def get_conversation_owner(self, conversation_id: UUID) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Conversation.user_id).where(Conversation.uuid == conversation_id)
            )
            owner_id = result.scalar_one_or_none()
        if owner_id is None:
            raise ConversationNotFoundError(conversation_id)
        return owner_id

    async def list_conversations(self, user_id: int) -> List[ConversationSummary]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.created_at.desc(), Conversation.id.desc())
            )
            return [
                ConversationSummary.model_validate(row) for row in result.scalars().all()
            ]

    async def insert_message(
        self,
        conversation_id: UUID,
        role: MessageRole,
        content: str,
        *,
        screenshots: Sequence[Screenshot] = (),
        is_asking_for_more_information: bool = False,
    ) -> ConversationTurn:
        async with self._session_factory() as session:
            internal_id = await self._resolve_internal_id(session, conversation_id)
            db_message = ConversationMessage(
                conversation_id=internal_id,
                role=MessageRole(role).value,
                content=content,
                is_asking_for_more_information=is_asking_for_more_information,
            )
            db_message.screenshots = [
                MessageScreenshot(
                    original_url=shot.original_url,
                    screenshot_url=shot.screenshot_url,
                )
                for shot in screenshots
            ]
            session.add(db_message)
            await session.commit()

            result = await session.execute(
                select(ConversationMessage)
                .options(selectinload(ConversationMessage.screenshots))
                .where(ConversationMessage.id == db_message.id)
            )
            return ConversationTurn.model_validate(result.scalar_one())

    async def fetch_messages(self, conversation_id: UUID) -> List[ConversationTurn]:
        async with self._session_factory() as session:
            internal_id = await self._resolve_internal_id(session, conversation_id)
            result = await session.execute(
                select(ConversationMessage)
                .options(selectinload(ConversationMessage.screenshots))
                .where(ConversationMessage.conversation_id == internal_id)
                .order_by(ConversationMessage.created_at, ConversationMessage.id)
            )
            return [ConversationTurn.model_validate(row) for row in result.scalars().all()]

    async def fetch_facts(self, user_id: int) -> List[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KnowledgeFact.content)
                .where(KnowledgeFact.user_id == user_id)
                .order_by(KnowledgeFact.id)
            )
            return list(result.scalars().all())

    async def insert_facts(self, user_id: int, facts: Sequence[NewKnowledgeFact]) -> None:
        if not facts:
            return
        async with self._session_factory() as session:
            session.add_all(
                KnowledgeFact(
                    user_id=user_id,
                    content=fact.content,
                    confidence_score=fact.confidence_score,
                )
                for fact in facts
            )
            await session.commit()

    async def fetch_user_profile(self, user_id: int) -> Optional[UserProfile]:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.id == user_id))
            db_user = result.scalar_one_or_none()
            return UserProfile.model_validate(db_user) if db_user else None

    async def update_user_profile(
        self, user_id: int, changes: Mapping[str, Optional[str]]
    ) -> Optional[UserProfile]:
        async with self._session_factory() as session:
            db_user = await session.get(User, user_id)
            if db_user is None:
                return None
            for name in PROFILE_FIELDS:
                if name in changes:
                    setattr(db_user, name, changes[name])
            await session.commit()
            return UserProfile.model_validate(db_user)

    @staticmethod
    async def _resolve_internal_id(session: AsyncSession, conversation_id: UUID) -> int:
        result = await session.execute(
            select(Conversation.id).where(Conversation.uuid == conversation_id)
        )
        internal_id = result.scalar_one_or_none()
        if internal_id is None:
            raise ConversationNotFoundError(conversation_id)
        return internal_id
