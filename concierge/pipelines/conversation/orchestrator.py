"""Sequencing of the two conversation flows.

``process_request`` handles the first message of a conversation and
``process_new_message`` a follow-up. Both run detached from the HTTP request
that triggered them, report progress to the conversation's room and contain
their own failures: after input resolution nothing is re-raised, errors are
logged and emitted as an ``agent-error`` event instead.

Message persistence and knowledge extraction are best effort. The chain from
verification through enrichment is the deliverable, so a failure there ends
the run with an error event.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterator, Optional, Sequence
from uuid import UUID

from concierge.application.interfaces import (
    ConversationRepositoryInterface,
    LanguageModelInterface,
    ResearchDelegateInterface,
    SpeechToTextInterface,
)
from concierge.domain.models import ConversationTurn, Screenshot
from concierge.models.conversation import MessageRole
from concierge.services.notifications import AgentAction, NotificationChannel
from concierge.services.response_contract import parse_sufficiency
from concierge.telemetry import observe_stage, record_pipeline_outcome

from .enrichment import LinkScreenshotEnricher
from .flow import PipelineState, can_transition
from .ingestion import MissingInputError, resolve_utterance
from .instructions import BASE_INSTRUCTIONS
from .knowledge import KnowledgeExtractor
from .prompts import (
    build_agent_prompt,
    build_follow_up_agent_prompt,
    build_follow_up_readable_prompt,
    build_readable_prompt,
    build_verification_prompt,
    with_personalization,
)
from .types import AudioInput, PipelineResult

logger = logging.getLogger("concierge.pipelines.conversation")
transcript_logger = logging.getLogger("concierge.logs.transcript")

FLOW_NEW_CONVERSATION = "new_conversation"
FLOW_FOLLOW_UP = "follow_up"

PROGRESS_PROCESSING = "Processing your request..."
PROGRESS_ANALYZING = "Analyzing your query..."
PROGRESS_PREPARING = "Preparing your personalized response..."
PROGRESS_IMAGES = "Getting images..."

DEFAULT_MAX_SCREENSHOTS = 2


class _PipelineRun:
    """Tracks the state of one run for logging and metrics."""

    def __init__(self, flow: str, conversation_id: Optional[UUID]) -> None:
        self.flow = flow
        self.conversation_id = conversation_id
        self.state = PipelineState.START

    @property
    def room(self) -> Optional[str]:
        return str(self.conversation_id) if self.conversation_id else None

    def advance(self, target: PipelineState) -> None:
        if not can_transition(self.state, target):
            raise RuntimeError(f"Invalid pipeline transition {self.state.value} -> {target.value}")
        logger.info(
            "flow=%s conversation=%s state %s -> %s",
            self.flow,
            self.conversation_id,
            self.state.value,
            target.value,
        )
        self.state = target

    def finish(self, outcome: str) -> None:
        self.advance(PipelineState.END)
        record_pipeline_outcome(self.flow, outcome)

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        started = time.perf_counter()
        try:
            yield
        finally:
            observe_stage(self.flow, name, time.perf_counter() - started)


class ConversationOrchestrator:
    def __init__(
        self,
        *,
        llm: LanguageModelInterface,
        repository: ConversationRepositoryInterface,
        research: ResearchDelegateInterface,
        speech_to_text: SpeechToTextInterface,
        enricher: LinkScreenshotEnricher,
        knowledge: KnowledgeExtractor,
        notifications: NotificationChannel,
        max_screenshots: int = DEFAULT_MAX_SCREENSHOTS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._llm = llm
        self._repository = repository
        self._research = research
        self._speech_to_text = speech_to_text
        self._enricher = enricher
        self._knowledge = knowledge
        self._notifications = notifications
        self._max_screenshots = max_screenshots
        self._today = today

    async def process_request(
        self,
        *,
        conversation_id: Optional[UUID],
        utterance: Optional[str] = None,
        audio: Optional[AudioInput] = None,
        user_id: Optional[int] = None,
    ) -> Optional[PipelineResult]:
        """Run the first-message flow; ``None`` on clarification or failure."""

        run = _PipelineRun(FLOW_NEW_CONVERSATION, conversation_id)
        utterance = await resolve_utterance(utterance, audio, self._speech_to_text)
        run.advance(PipelineState.INPUT_RESOLVED)

        try:
            context = await self._record_user_turn(run, utterance, user_id)

            with run.stage("verify"):
                verification = await self._llm.complete(
                    BASE_INSTRUCTIONS,
                    with_personalization(context, build_verification_prompt(utterance)),
                )
            sufficient = parse_sufficiency(verification)
            await self._persist_message(
                run,
                MessageRole.ASSISTANT,
                verification,
                is_asking_for_more_information=not sufficient,
            )

            if not sufficient:
                run.advance(PipelineState.CLARIFICATION_NEEDED)
                await self._notifications.emit_final(
                    run.room, verification, is_asking_for_more_information=True
                )
                run.advance(PipelineState.EMITTED)
                run.finish("clarification")
                return None

            run.advance(PipelineState.VERIFIED)
            brief_prompt = with_personalization(
                context, build_agent_prompt(utterance, today=self._today())
            )
            return await self._research_and_answer(
                run,
                brief_prompt,
                lambda findings: build_readable_prompt(findings, utterance),
            )
        except Exception as exc:
            await self._fail(run, exc)
            return None

    async def process_new_message(
        self,
        *,
        history: Sequence[ConversationTurn],
        new_message: str,
        conversation_id: Optional[UUID],
        user_id: Optional[int] = None,
    ) -> Optional[PipelineResult]:
        """Run the follow-up flow; verification is skipped for ongoing conversations."""

        if not new_message or not new_message.strip():
            raise MissingInputError("A follow-up message cannot be empty")
        new_message = new_message.strip()

        run = _PipelineRun(FLOW_FOLLOW_UP, conversation_id)
        run.advance(PipelineState.INPUT_RESOLVED)

        try:
            context = await self._record_user_turn(run, new_message, user_id)
            brief_prompt = with_personalization(
                context,
                build_follow_up_agent_prompt(history, new_message, today=self._today()),
            )
            return await self._research_and_answer(
                run,
                brief_prompt,
                lambda findings: build_follow_up_readable_prompt(
                    findings, new_message, history
                ),
            )
        except Exception as exc:
            await self._fail(run, exc)
            return None

    async def _record_user_turn(
        self, run: _PipelineRun, utterance: str, user_id: Optional[int]
    ) -> str:
        """Persist the user message, learn from it, and return the knowledge context."""

        transcript_logger.info(
            "user | conversation=%s | text=%s", run.conversation_id, utterance
        )
        await self._persist_message(run, MessageRole.USER, utterance)

        if user_id is not None:
            with run.stage("knowledge"):
                try:
                    evaluation = await self._knowledge.evaluate(utterance)
                    await self._knowledge.insert_if_new(evaluation, user_id)
                except Exception:
                    logger.exception(
                        "Knowledge extraction failed conversation=%s", run.conversation_id
                    )

        run.advance(PipelineState.USER_PERSISTED)
        await self._notifications.emit_progress(run.room, PROGRESS_PROCESSING)
        return await self._knowledge.build_context(user_id)

    async def _research_and_answer(
        self,
        run: _PipelineRun,
        brief_prompt: str,
        readable_prompt: Callable[[str], str],
    ) -> PipelineResult:
        await self._notifications.emit_progress(run.room, PROGRESS_ANALYZING)
        with run.stage("transform"):
            brief = await self._llm.complete(BASE_INSTRUCTIONS, brief_prompt)
        run.advance(PipelineState.PROMPT_BUILT)

        await self._notifications.emit_action(
            run.room,
            AgentAction.SEARCHING,
            "Researching the best options for you",
        )
        with run.stage("research"):
            research = await self._research.research(brief, run.room)
        await self._notifications.emit_action(
            run.room,
            AgentAction.COMPLETED,
            "Research finished",
            {"sources": len(research.sources)},
        )
        run.advance(PipelineState.RESEARCHED)

        await self._notifications.emit_progress(run.room, PROGRESS_PREPARING)
        with run.stage("humanize"):
            answer = await self._llm.complete(
                BASE_INSTRUCTIONS, readable_prompt(research.as_text())
            )
        run.advance(PipelineState.HUMANIZED)

        await self._notifications.emit_progress(run.room, PROGRESS_IMAGES)
        with run.stage("enrich"):
            screenshots = await self._enricher.enrich(answer, self._max_screenshots)
        run.advance(PipelineState.ENRICHED)

        await self._persist_message(
            run, MessageRole.ASSISTANT, answer, screenshots=screenshots
        )
        run.advance(PipelineState.ASSISTANT_PERSISTED)
        transcript_logger.info(
            "assistant | conversation=%s | screenshots=%d | text=%s",
            run.conversation_id,
            len(screenshots),
            answer,
        )

        await self._notifications.emit_final(
            run.room,
            answer,
            is_asking_for_more_information=False,
            screenshots=screenshots,
        )
        run.advance(PipelineState.EMITTED)
        run.finish("completed")
        return PipelineResult(message=answer, screenshots=list(screenshots))

    async def _persist_message(
        self,
        run: _PipelineRun,
        role: MessageRole,
        content: str,
        *,
        screenshots: Sequence[Screenshot] = (),
        is_asking_for_more_information: bool = False,
    ) -> None:
        if run.conversation_id is None:
            return
        try:
            await self._repository.insert_message(
                run.conversation_id,
                role,
                content,
                screenshots=screenshots,
                is_asking_for_more_information=is_asking_for_more_information,
            )
        except Exception:
            logger.exception(
                "Could not persist %s message conversation=%s",
                role.value,
                run.conversation_id,
            )

    async def _fail(self, run: _PipelineRun, exc: Exception) -> None:
        logger.error(
            "flow=%s conversation=%s failed in state %s: %s",
            run.flow,
            run.conversation_id,
            run.state.value,
            exc,
            exc_info=exc,
        )
        if can_transition(run.state, PipelineState.ERROR_EMITTED):
            run.advance(PipelineState.ERROR_EMITTED)
        await self._notifications.emit_error(run.room, str(exc) or type(exc).__name__)
        if run.state is PipelineState.ERROR_EMITTED:
            run.finish("failed")


__all__ = [
    "ConversationOrchestrator",
    "FLOW_FOLLOW_UP",
    "FLOW_NEW_CONVERSATION",
    "PROGRESS_ANALYZING",
    "PROGRESS_IMAGES",
    "PROGRESS_PREPARING",
    "PROGRESS_PROCESSING",
]
