"""Telemetry helpers and metrics."""

from .metrics import (
    ERROR_COUNTER,
    KNOWLEDGE_FACTS_INSERTED,
    NOTIFICATION_EVENTS,
    PIPELINE_RUNS,
    PIPELINE_STAGE_LATENCY,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    SCREENSHOT_CAPTURES,
    observe_request,
    observe_stage,
    record_pipeline_outcome,
)

__all__ = [
    "ERROR_COUNTER",
    "KNOWLEDGE_FACTS_INSERTED",
    "NOTIFICATION_EVENTS",
    "PIPELINE_RUNS",
    "PIPELINE_STAGE_LATENCY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "SCREENSHOT_CAPTURES",
    "observe_request",
    "observe_stage",
    "record_pipeline_outcome",
]
