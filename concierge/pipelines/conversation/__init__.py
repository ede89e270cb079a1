"""Conversation pipeline package.

Modules are organised by the order in which a pipeline run executes:

1. `ingestion` – resolve the utterance from text or audio.
2. `knowledge` – classify, deduplicate and store personalization facts.
3. `prompts` / `instructions` – assemble every model prompt.
4. `enrichment` – extract links and capture screenshots.
5. `orchestrator` – sequence the stages for both conversation flows.
6. `flow` – stage map and state machine of a run.
"""

from .enrichment import LinkScreenshotEnricher, extract_urls
from .flow import ConversationPipeline, PipelineStage, PipelineState
from .ingestion import (
    MissingInputError,
    read_audio_bytes,
    resolve_content_type,
    resolve_utterance,
)
from .knowledge import KnowledgeExtractor
from .orchestrator import ConversationOrchestrator
from .types import AudioInput, PipelineResult

__all__ = [
    "AudioInput",
    "ConversationOrchestrator",
    "ConversationPipeline",
    "KnowledgeExtractor",
    "LinkScreenshotEnricher",
    "MissingInputError",
    "PipelineResult",
    "PipelineStage",
    "PipelineState",
    "extract_urls",
    "read_audio_bytes",
    "resolve_content_type",
    "resolve_utterance",
]
