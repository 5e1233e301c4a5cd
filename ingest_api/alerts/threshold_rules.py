"""Reglas de umbral por dispositivo.

Funciones puras: reciben umbrales, salud vigente y la última lectura, y
devuelven las violaciones. La creación (con dedup) la hace el AlertEngine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..core.domain.alert import AlertSeverity, AlertTriggerType
from ..core.domain.device import AlertThresholds
from ..core.domain.health import FailureRisk
from ..core.domain.reading import DEFAULT_VIBRATION_SCALE, SensorReading

# Margen sobre el umbral a partir del cual la violación es CRITICAL
TEMPERATURE_CRITICAL_MARGIN = 10.0
VIBRATION_CRITICAL_MARGIN = 0.2
PRESSURE_CRITICAL_MARGIN = 10.0


@dataclass(frozen=True)
class ThresholdViolation:
    trigger_type: AlertTriggerType
    severity: AlertSeverity
    message: str


def _over(value: float, threshold: float, margin: float) -> AlertSeverity:
    return AlertSeverity.CRITICAL if value > threshold + margin else AlertSeverity.WARNING


def evaluate_thresholds(
    thresholds: AlertThresholds,
    health_score: Optional[float] = None,
    failure_risk: Optional[FailureRisk] = None,
    reading: Optional[SensorReading] = None,
    vibration_scale: float = DEFAULT_VIBRATION_SCALE,
) -> List[ThresholdViolation]:
    """Evalúa salud y última lectura contra los umbrales del dispositivo.

    La vibración del umbral está en escala cruda; si la lectura viene
    normalizada se desescala antes de comparar.
    """
    violations: List[ThresholdViolation] = []

    if health_score is not None and health_score < thresholds.health_score_min:
        violations.append(
            ThresholdViolation(
                AlertTriggerType.HEALTH_SCORE,
                AlertSeverity.WARNING,
                f"Device health score critically low: {health_score:g}%",
            )
        )

    if failure_risk == FailureRisk.HIGH:
        violations.append(
            ThresholdViolation(
                AlertTriggerType.FAILURE_RISK,
                AlertSeverity.CRITICAL,
                "High failure risk detected",
            )
        )
    elif failure_risk == FailureRisk.MEDIUM:
        violations.append(
            ThresholdViolation(
                AlertTriggerType.FAILURE_RISK,
                AlertSeverity.WARNING,
                "Medium failure risk detected",
            )
        )

    if reading is None:
        return violations

    vibration = reading.vibration / vibration_scale if reading.normalized else reading.vibration

    if reading.temperature > thresholds.temperature:
        violations.append(
            ThresholdViolation(
                AlertTriggerType.TEMPERATURE,
                _over(reading.temperature, thresholds.temperature, TEMPERATURE_CRITICAL_MARGIN),
                f"Temperature exceeds threshold: {reading.temperature:g}°C",
            )
        )

    if vibration > thresholds.vibration:
        violations.append(
            ThresholdViolation(
                AlertTriggerType.VIBRATION,
                _over(vibration, thresholds.vibration, VIBRATION_CRITICAL_MARGIN),
                f"Vibration exceeds threshold: {vibration:g}",
            )
        )

    if reading.pressure > thresholds.pressure:
        violations.append(
            ThresholdViolation(
                AlertTriggerType.PRESSURE,
                _over(reading.pressure, thresholds.pressure, PRESSURE_CRITICAL_MARGIN),
                f"Pressure exceeds threshold: {reading.pressure:g}",
            )
        )

    return violations
