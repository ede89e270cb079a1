"""Endpoints exposing the personalization knowledge base."""

import logging

from fastapi import APIRouter, HTTPException, status

from concierge.controllers.dependencies import CurrentUserDep, ServicesDep
from concierge.services.llm_client import LlmInvocationError
from concierge.services.response_contract import StructuredResponseDecodeError
from concierge.views import (
    ErrorResponse,
    KnowledgeFactsResponse,
    KnowledgeRequest,
    KnowledgeResponse,
)
from concierge.views.knowledge import KnowledgeEvaluationResponse

router = APIRouter(
    prefix="/knowledge", tags=["knowledge"], responses={502: {"model": ErrorResponse}}
)

logger = logging.getLogger(__name__)


@router.post("", response_model=KnowledgeResponse)
async def submit_knowledge(
    payload: KnowledgeRequest,
    current_user: CurrentUserDep,
    services: ServicesDep,
) -> KnowledgeResponse:
    """Evaluate a message and store any new facts about the caller."""

    try:
        evaluation = await services.knowledge.evaluate(payload.message)
    except (StructuredResponseDecodeError, LlmInvocationError) as exc:
        logger.error("Knowledge evaluation failed for user=%s: %s", current_user.id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Knowledge evaluation failed",
        ) from exc

    inserted = await services.knowledge.insert_if_new(evaluation, current_user.id)
    return KnowledgeResponse(
        evaluation=KnowledgeEvaluationResponse(
            isRelevant=evaluation.is_relevant,
            content=evaluation.content,
            confidenceScore=evaluation.confidence_score,
        ),
        inserted=inserted,
    )


@router.get("", response_model=KnowledgeFactsResponse)
async def list_knowledge(
    current_user: CurrentUserDep,
    services: ServicesDep,
) -> KnowledgeFactsResponse:
    facts = await services.repository.fetch_facts(current_user.id)
    return KnowledgeFactsResponse(facts=facts)
