"""Pydantic schemas for knowledge endpoints."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class KnowledgeRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


class KnowledgeEvaluationResponse(BaseModel):
    isRelevant: bool
    content: Optional[str] = None
    confidenceScore: float = 0.0


class KnowledgeResponse(BaseModel):
    evaluation: KnowledgeEvaluationResponse
    inserted: List[str] = Field(default_factory=list)


class KnowledgeFactsResponse(BaseModel):
    facts: List[str] = Field(default_factory=list)


__all__ = [
    "KnowledgeEvaluationResponse",
    "KnowledgeFactsResponse",
    "KnowledgeRequest",
    "KnowledgeResponse",
]
