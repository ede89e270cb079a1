"""Service layer helpers for external integrations and process-wide services."""

from .llm_client import BedrockLlmClient, LlmInvocationError
from .notifications import AgentAction, NotificationChannel
from .response_contract import StructuredResponseDecodeError
from .scheduler import PipelineScheduler
from .transcribe import TranscribeService, TranscriptionError, create_transcribe_service

__all__ = [
    "AgentAction",
    "BedrockLlmClient",
    "LlmInvocationError",
    "NotificationChannel",
    "PipelineScheduler",
    "StructuredResponseDecodeError",
    "TranscribeService",
    "TranscriptionError",
    "create_transcribe_service",
]
