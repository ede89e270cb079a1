"""Process-wide service graph shared by routers and detached pipeline runs."""

from dataclasses import dataclass

from concierge.application.interfaces import (
    ConversationRepositoryInterface,
    SpeechToTextInterface,
)
from concierge.database import SessionFactory
from concierge.infrastructure.external.firecrawl import FirecrawlScreenshotClient
from concierge.infrastructure.external.research_agent import ResearchAgentClient
from concierge.infrastructure.persistence.repositories_sqlalchemy import (
    SQLAlchemyConversationRepository,
)
from concierge.pipelines.conversation import (
    ConversationOrchestrator,
    KnowledgeExtractor,
    LinkScreenshotEnricher,
)
from concierge.services.llm_client import BedrockLlmClient
from concierge.services.notifications import NotificationChannel
from concierge.services.scheduler import PipelineScheduler
from concierge.services.transcribe import create_transcribe_service

from .settings import settings


@dataclass
class ServiceContainer:
    repository: ConversationRepositoryInterface
    speech_to_text: SpeechToTextInterface
    knowledge: KnowledgeExtractor
    notifications: NotificationChannel
    orchestrator: ConversationOrchestrator
    scheduler: PipelineScheduler


def build_services() -> ServiceContainer:
    """Wire the production collaborators once at process start."""

    repository = SQLAlchemyConversationRepository(SessionFactory)
    llm = BedrockLlmClient()
    speech_to_text = create_transcribe_service()
    notifications = NotificationChannel()
    knowledge = KnowledgeExtractor(llm, repository)
    orchestrator = ConversationOrchestrator(
        llm=llm,
        repository=repository,
        research=ResearchAgentClient(),
        speech_to_text=speech_to_text,
        enricher=LinkScreenshotEnricher(FirecrawlScreenshotClient()),
        knowledge=knowledge,
        notifications=notifications,
        max_screenshots=settings.pipeline.max_screenshots,
    )
    return ServiceContainer(
        repository=repository,
        speech_to_text=speech_to_text,
        knowledge=knowledge,
        notifications=notifications,
        orchestrator=orchestrator,
        scheduler=PipelineScheduler(),
    )


__all__ = ["ServiceContainer", "build_services"]
