"""Metrics module for pipeline observability (Prometheus)."""

from .pipeline_metrics import (
    ALERTS,
    BATCH_FLUSHES,
    BATCH_READINGS_DROPPED,
    INFERENCE_RUNS,
    PUBLISH_FAILURES,
    PUBLISH_QUEUE_SIZE,
    READINGS_INGESTED,
)

__all__ = [
    "ALERTS",
    "BATCH_FLUSHES",
    "BATCH_READINGS_DROPPED",
    "INFERENCE_RUNS",
    "PUBLISH_FAILURES",
    "PUBLISH_QUEUE_SIZE",
    "READINGS_INGESTED",
]
