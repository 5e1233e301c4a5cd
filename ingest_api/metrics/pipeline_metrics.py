"""Métricas Prometheus del pipeline de ingesta/inferencia.

Los nombres siguen el esquema ``<componente>_<qué>_total`` con una label
``status`` (o ``outcome``) por resultado.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

READINGS_INGESTED = Counter(
    "health_ingest_readings_total",
    "Readings received by the ingestion coordinator",
    ["status"],  # accepted, rejected
)

INFERENCE_RUNS = Counter(
    "health_inference_runs_total",
    "Health inference cycles executed by the timeline buffer",
    ["trigger", "status"],  # trigger: size|timeout, status: ok|error
)

BATCH_FLUSHES = Counter(
    "health_batch_flushes_total",
    "Bulk insert attempts performed by the batch queue",
    ["status"],  # success, failed
)

BATCH_READINGS_DROPPED = Counter(
    "health_batch_readings_dropped_total",
    "Readings lost because their bulk insert failed",
)

ALERTS = Counter(
    "health_alerts_total",
    "Alert creation attempts",
    ["trigger_type", "outcome"],  # outcome: created, suppressed
)

PUBLISH_FAILURES = Counter(
    "health_publish_failures_total",
    "Fan-out events that could not be published",
)

PUBLISH_QUEUE_SIZE = Gauge(
    "health_publish_queue_size",
    "Events waiting in the background publisher queue",
)
