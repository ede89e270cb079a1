"""Typed containers shared across the conversation pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from concierge.domain.models import Screenshot


@dataclass(frozen=True)
class AudioInput:
    """Raw recording uploaded instead of a typed utterance."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class PipelineResult:
    """Final humanized answer returned to callers that are not listening live."""

    message: str
    screenshots: List[Screenshot] = field(default_factory=list)
