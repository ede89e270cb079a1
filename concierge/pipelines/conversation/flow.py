"""High-level orchestration map for the conversation pipeline.

``ConversationOrchestrator`` in ``orchestrator.py`` runs the stages below
in order for both entry points:

1. ``ingestion`` – resolve the utterance, transcribing audio when needed.
2. ``persistence`` – store the user turn and extract knowledge facts.
3. ``verification`` – ask the model whether the request can be researched
   (new conversations only); otherwise reply with a clarification.
4. ``prompts`` – rewrite the request as a third-person research brief.
5. ``research`` – hand the brief to the research agent.
6. ``humanize`` – turn the findings into an HTML answer.
7. ``enrichment`` – screenshot up to N links found in the answer.
8. ``persistence`` – store the assistant turn with its screenshots.
9. ``notifications`` – emit the final event to the conversation room.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List


class PipelineState(str, Enum):
    """States a single pipeline run moves through."""

    START = "start"
    INPUT_RESOLVED = "input_resolved"
    USER_PERSISTED = "user_persisted"
    VERIFIED = "verified"
    CLARIFICATION_NEEDED = "clarification_needed"
    PROMPT_BUILT = "prompt_built"
    RESEARCHED = "researched"
    HUMANIZED = "humanized"
    ENRICHED = "enriched"
    ASSISTANT_PERSISTED = "assistant_persisted"
    EMITTED = "emitted"
    ERROR_EMITTED = "error_emitted"
    END = "end"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.START: frozenset({PipelineState.INPUT_RESOLVED}),
    PipelineState.INPUT_RESOLVED: frozenset({PipelineState.USER_PERSISTED}),
    PipelineState.USER_PERSISTED: frozenset(
        {
            PipelineState.VERIFIED,
            PipelineState.CLARIFICATION_NEEDED,
            # Follow-up messages skip verification.
            PipelineState.PROMPT_BUILT,
        }
    ),
    PipelineState.VERIFIED: frozenset({PipelineState.PROMPT_BUILT}),
    PipelineState.CLARIFICATION_NEEDED: frozenset({PipelineState.EMITTED}),
    PipelineState.PROMPT_BUILT: frozenset({PipelineState.RESEARCHED}),
    PipelineState.RESEARCHED: frozenset({PipelineState.HUMANIZED}),
    PipelineState.HUMANIZED: frozenset({PipelineState.ENRICHED}),
    PipelineState.ENRICHED: frozenset({PipelineState.ASSISTANT_PERSISTED}),
    PipelineState.ASSISTANT_PERSISTED: frozenset({PipelineState.EMITTED}),
    PipelineState.EMITTED: frozenset({PipelineState.END}),
    PipelineState.ERROR_EMITTED: frozenset({PipelineState.END}),
    PipelineState.END: frozenset(),
}


def can_transition(current: PipelineState, target: PipelineState) -> bool:
    """Any state after input resolution may fail into ERROR_EMITTED."""

    if target is PipelineState.ERROR_EMITTED:
        return current not in (
            PipelineState.START,
            PipelineState.ERROR_EMITTED,
            PipelineState.END,
        )
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the conversation pipeline."""

    order: int
    name: str
    module: str
    summary: str


class ConversationPipeline:
    """Utility wrapper for documenting the conversation flows."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            "Ingestion",
            "concierge.pipelines.conversation.ingestion",
            "Use the typed text or transcribe the uploaded audio.",
        ),
        PipelineStage(
            2,
            "User Turn + Knowledge",
            "concierge.pipelines.conversation.knowledge",
            "Persist the user message and store any durable personalization fact.",
        ),
        PipelineStage(
            3,
            "Verification",
            "concierge.pipelines.conversation.orchestrator",
            "Ask the model whether the request has its minimum fields (new conversations).",
        ),
        PipelineStage(
            4,
            "Prompt Transformation",
            "concierge.pipelines.conversation.prompts",
            "Rewrite the request, or the follow-up with its history, as a research brief.",
        ),
        PipelineStage(
            5,
            "Research",
            "concierge.infrastructure.external.research_agent",
            "Delegate the brief to the research agent and collect its sources.",
        ),
        PipelineStage(
            6,
            "Humanize",
            "concierge.pipelines.conversation.prompts",
            "Turn the findings into an HTML answer in the user's language.",
        ),
        PipelineStage(
            7,
            "Enrichment",
            "concierge.pipelines.conversation.enrichment",
            "Screenshot the first links of the answer that can be captured.",
        ),
        PipelineStage(
            8,
            "Assistant Turn",
            "concierge.infrastructure.persistence.repositories_sqlalchemy",
            "Persist the answer with its screenshots.",
        ),
        PipelineStage(
            9,
            "Final Event",
            "concierge.services.notifications",
            "Emit the terminal event to the conversation room.",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        """Expose the ordered list of stages for debugging and documentation."""

        return tuple(cls._STAGES)


__all__ = ["ConversationPipeline", "PipelineStage", "PipelineState", "can_transition"]
