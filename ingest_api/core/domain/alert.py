"""Modelo de dominio de alertas y su ciclo de vida."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AlertTriggerType(str, Enum):
    HEALTH_SCORE = "HEALTH_SCORE"
    FAILURE_RISK = "FAILURE_RISK"
    TEMPERATURE = "TEMPERATURE"
    VIBRATION = "VIBRATION"
    PRESSURE = "PRESSURE"
    RULE_BASED = "RULE_BASED"
    FORMULA_PREDICTION = "FORMULA_PREDICTION"


class AlertStatus(str, Enum):
    """Estados del ciclo de vida. Solo avanzan, nunca retroceden."""
    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"

    @property
    def is_open(self) -> bool:
        return self in (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)


@dataclass(frozen=True)
class SensorSnapshot:
    temperature: Optional[float] = None
    vibration: Optional[float] = None
    pressure: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "temperature": self.temperature,
            "vibration": self.vibration,
            "pressure": self.pressure,
        }


@dataclass
class Alert:
    id: str
    device_id: str
    severity: AlertSeverity
    trigger_type: AlertTriggerType
    message: str
    created_at: datetime
    status: AlertStatus = AlertStatus.ACTIVE
    reason: Optional[str] = None
    sensor_snapshot: SensorSnapshot = field(default_factory=SensorSnapshot)
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    def to_event(self) -> dict:
        return {
            "id": self.id,
            "deviceId": self.device_id,
            "severity": self.severity.value,
            "triggerType": self.trigger_type.value,
            "message": self.message,
            "status": self.status.value,
            "timestamp": self.created_at.isoformat(),
        }
