"""Extraction of durable personalization facts from user messages."""

from __future__ import annotations

import logging
from typing import Optional

from concierge.application.interfaces import (
    ConversationRepositoryInterface,
    LanguageModelInterface,
)
from concierge.domain.models import NewKnowledgeFact
from concierge.services.response_contract import (
    DeduplicationDecision,
    KnowledgeEvaluation,
    decode_structured_response,
)
from concierge.telemetry import KNOWLEDGE_FACTS_INSERTED

from .instructions import (
    KNOWLEDGE_DEDUPLICATION_INSTRUCTIONS,
    KNOWLEDGE_EXTRACTION_INSTRUCTIONS,
)
from .prompts import build_deduplication_prompt

logger = logging.getLogger("concierge.pipelines.conversation")

_UNKNOWN = "unknown"


class KnowledgeExtractor:
    """Classify, deduplicate and store facts about a user.

    ``evaluate`` is strict and lets decode errors through. ``insert_if_new``
    and ``build_context`` are best effort and never raise, so callers can run
    them inside the pipeline without guarding every call.
    """

    def __init__(
        self,
        llm: LanguageModelInterface,
        repository: ConversationRepositoryInterface,
    ) -> None:
        self._llm = llm
        self._repository = repository

    async def evaluate(self, utterance: str) -> KnowledgeEvaluation:
        raw = await self._llm.complete(KNOWLEDGE_EXTRACTION_INSTRUCTIONS, utterance)
        evaluation = decode_structured_response(raw, KnowledgeEvaluation)
        logger.info(
            "Knowledge evaluation relevant=%s confidence=%.2f",
            evaluation.is_relevant,
            evaluation.confidence_score,
        )
        return evaluation

    async def insert_if_new(
        self, evaluation: KnowledgeEvaluation, user_id: Optional[int]
    ) -> list[str]:
        """Store the facts in ``evaluation`` that the user's profile lacks."""

        if not evaluation.is_relevant or not evaluation.content or user_id is None:
            return []

        try:
            existing = await self._repository.fetch_facts(user_id)
            raw = await self._llm.complete(
                KNOWLEDGE_DEDUPLICATION_INSTRUCTIONS,
                build_deduplication_prompt(existing, evaluation.content),
            )
            decision = decode_structured_response(raw, DeduplicationDecision)
            if not decision.should_insert:
                logger.info("Knowledge for user=%s already known; skipping", user_id)
                return []

            facts = decision.facts()
            if not facts:
                return []
            await self._repository.insert_facts(
                user_id,
                [
                    NewKnowledgeFact(
                        content=content,
                        confidence_score=evaluation.confidence_score,
                    )
                    for content in facts
                ],
            )
        except Exception:
            logger.exception("Knowledge insertion failed for user=%s", user_id)
            return []

        KNOWLEDGE_FACTS_INSERTED.inc(len(facts))
        logger.info("Stored %d knowledge fact(s) for user=%s", len(facts), user_id)
        return facts

    async def build_context(self, user_id: Optional[int]) -> str:
        """Profile fields plus stored facts, one per line."""

        if user_id is None:
            return ""

        lines: list[str] = []
        try:
            profile = await self._repository.fetch_user_profile(user_id)
        except Exception:
            logger.exception("Could not load profile for user=%s", user_id)
            profile = None

        lines.append(f"City: {(profile.city if profile else None) or _UNKNOWN}")
        lines.append(
            f"Postal code: {(profile.postal_code if profile else None) or _UNKNOWN}"
        )
        lines.append(f"Country: {(profile.country if profile else None) or _UNKNOWN}")

        try:
            lines.extend(await self._repository.fetch_facts(user_id))
        except Exception:
            logger.exception("Could not load knowledge facts for user=%s", user_id)

        return "\n".join(lines)


__all__ = ["KnowledgeExtractor"]
