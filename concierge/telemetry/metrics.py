"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

PIPELINE_RUNS = Counter(
    "conversation_pipeline_runs_total",
    "Conversation pipeline runs by flow and terminal outcome",
    ("flow", "outcome"),
)

PIPELINE_STAGE_LATENCY = Histogram(
    "conversation_pipeline_stage_seconds",
    "Time spent in each conversation pipeline stage",
    ("flow", "stage"),
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

NOTIFICATION_EVENTS = Counter(
    "notification_events_total",
    "Realtime events emitted to conversation rooms",
    ("event",),
)

KNOWLEDGE_FACTS_INSERTED = Counter(
    "knowledge_facts_inserted_total",
    "Personalization facts stored after deduplication",
)

SCREENSHOT_CAPTURES = Counter(
    "screenshot_captures_total",
    "Link screenshot capture attempts",
    ("outcome",),
)


def observe_request(method: str, route: str, status_code: int, duration_seconds: float) -> None:
    """Count and time one HTTP request; 5xx responses also bump ``ERROR_COUNTER``."""

    labels = {"method": method or "UNKNOWN", "route": route or "unknown"}
    REQUEST_COUNT.labels(status=str(status_code), **labels).inc()
    REQUEST_LATENCY.labels(**labels).observe(max(duration_seconds, 0))
    if status_code >= 500:
        ERROR_COUNTER.labels(**labels).inc()


def observe_stage(flow: str, stage: str, duration_seconds: float) -> None:
    PIPELINE_STAGE_LATENCY.labels(flow=flow, stage=stage).observe(max(duration_seconds, 0))


def record_pipeline_outcome(flow: str, outcome: str) -> None:
    PIPELINE_RUNS.labels(flow=flow, outcome=outcome).inc()
