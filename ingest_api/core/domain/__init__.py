"""Domain layer - Modelos y contratos."""

from .alert import Alert, AlertSeverity, AlertStatus, AlertTriggerType, SensorSnapshot
from .device import AlertThresholds, DeviceRecord, DEFAULT_ALERT_THRESHOLDS
from .health import (
    ComponentScores,
    DeviceHealthState,
    FailureRisk,
    HealthAssessment,
    HealthStatus,
)
from .reading import SensorReading, normalize_reading

__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertStatus",
    "AlertTriggerType",
    "SensorSnapshot",
    "AlertThresholds",
    "DeviceRecord",
    "DEFAULT_ALERT_THRESHOLDS",
    "ComponentScores",
    "DeviceHealthState",
    "FailureRisk",
    "HealthAssessment",
    "HealthStatus",
    "SensorReading",
    "normalize_reading",
]
