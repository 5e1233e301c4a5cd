"""Alertas: dedup, ciclo de vida y reglas de umbral."""

from .alert_engine import ALERTS_TOPIC, AlertEngine, device_topic
from .threshold_monitor import ThresholdMonitor
from .threshold_rules import ThresholdViolation, evaluate_thresholds

__all__ = [
    "ALERTS_TOPIC",
    "AlertEngine",
    "ThresholdMonitor",
    "ThresholdViolation",
    "device_topic",
    "evaluate_thresholds",
]
