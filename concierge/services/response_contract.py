"""Decoding of model output that is expected to carry structure.

The knowledge stages ask the model for small JSON envelopes and the
verification stage asks for a bare boolean. Both contracts live here so the
pipeline only ever sees validated objects or a ``StructuredResponseDecodeError``.
"""

from __future__ import annotations

import json
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

ModelT = TypeVar("ModelT", bound=BaseModel)


class StructuredResponseDecodeError(RuntimeError):
    """Raised when model output cannot be decoded into the expected shape."""

    def __init__(self, message: str, payload: str) -> None:
        super().__init__(message)
        self.payload = payload


class KnowledgeEvaluation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_relevant: bool = Field(alias="isRelevant")
    content: Optional[str] = None
    confidence_score: float = 0.0

    @field_validator("confidence_score", mode="before")
    @classmethod
    def clamp_confidence(cls, value):
        if value is None:
            return 0.0
        return max(0.0, min(1.0, float(value)))

    @field_validator("content", mode="before")
    @classmethod
    def blank_content_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class DeduplicationDecision(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    should_insert: bool = Field(alias="shouldInsert")
    clean_content: str = Field(default="", alias="cleanContent")

    def facts(self) -> list[str]:
        """Split semicolon-separated content into independent facts."""

        return [part.strip() for part in self.clean_content.split(";") if part.strip()]


def decode_structured_response(payload: str, model: Type[ModelT]) -> ModelT:
    """Validate a JSON object embedded in model output against ``model``."""

    cleaned = _clean_json_payload(payload)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise StructuredResponseDecodeError(
            f"{model.__name__}: model output is not valid JSON ({exc.msg})", payload
        ) from exc

    if not isinstance(data, dict):
        raise StructuredResponseDecodeError(
            f"{model.__name__}: expected a JSON object", payload
        )

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise StructuredResponseDecodeError(
            f"{model.__name__}: {exc.error_count()} validation error(s)", payload
        ) from exc


def parse_sufficiency(raw: str | None) -> bool:
    """Interpret the verification stage's answer as a strict boolean.

    The model is instructed to answer ``true`` when the request is complete and
    to ask a clarifying question otherwise, so any occurrence of ``true`` wins.
    """

    return "true" in (raw or "").lower()


def _clean_json_payload(payload: str) -> str:
    """Strip Markdown code blocks and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = payload.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]

    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]

    cleaned = cleaned.strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


__all__ = [
    "DeduplicationDecision",
    "KnowledgeEvaluation",
    "StructuredResponseDecodeError",
    "decode_structured_response",
    "parse_sufficiency",
]
