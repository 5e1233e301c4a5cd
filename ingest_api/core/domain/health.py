"""Estado de salud de un dispositivo (salida del motor de scoring)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FailureRisk(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class HealthStatus(str, Enum):
    STABLE = "STABLE"
    DEGRADING = "DEGRADING"
    CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class ComponentScores:
    temperature: float = 100.0
    vibration: float = 100.0
    pressure: float = 100.0

    def to_dict(self) -> dict:
        return {
            "temperature": self.temperature,
            "vibration": self.vibration,
            "pressure": self.pressure,
        }


@dataclass(frozen=True)
class HealthAssessment:
    """Resultado puro del scoring, sin device_id ni timestamp."""
    health_score: int
    failure_risk: FailureRisk
    status: HealthStatus
    component_scores: ComponentScores
    reason: str


@dataclass(frozen=True)
class DeviceHealthState:
    """Evaluación vigente de un dispositivo.

    Se sobrescribe completa en cada ciclo de inferencia (last-writer-wins).
    """
    device_id: str
    health_score: int
    failure_risk: FailureRisk
    status: HealthStatus
    component_scores: ComponentScores
    reason: str
    computed_at: datetime
    window_size: Optional[int] = None

    @classmethod
    def from_assessment(
        cls,
        device_id: str,
        assessment: HealthAssessment,
        computed_at: datetime,
        window_size: Optional[int] = None,
    ) -> "DeviceHealthState":
        return cls(
            device_id=device_id,
            health_score=assessment.health_score,
            failure_risk=assessment.failure_risk,
            status=assessment.status,
            component_scores=assessment.component_scores,
            reason=assessment.reason,
            computed_at=computed_at,
            window_size=window_size,
        )

    @property
    def is_at_risk(self) -> bool:
        return self.failure_risk == FailureRisk.HIGH or self.status == HealthStatus.CRITICAL

    def to_event(self) -> dict:
        return {
            "healthScore": self.health_score,
            "failureRisk": self.failure_risk.value,
            "status": self.status.value,
            "reason": self.reason,
            "componentScores": self.component_scores.to_dict(),
        }
