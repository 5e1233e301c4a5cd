"""Motor de scoring de salud de equipos.

Fórmula fija y determinista (no es un modelo aprendido):

    health = round(temp * 0.30 + vib * 0.35 + press * 0.35)

Cada componente arranca en 100 y resta penalizaciones por rango, picos,
inestabilidad (desviación estándar) y tendencia de la ventana. Todas las
funciones de este módulo son puras y totales sobre entradas válidas.
"""

from __future__ import annotations

import math
from typing import Callable, List, Sequence, Tuple

from ingest_api.core.domain.health import (
    ComponentScores,
    FailureRisk,
    HealthAssessment,
    HealthStatus,
)
from ingest_api.core.domain.reading import DEFAULT_VIBRATION_SCALE, SensorReading
from ingest_api.errors import InsufficientDataError

from .stats import WindowStats, compute_window_stats

NEUTRAL_SCORE = 100.0

TEMPERATURE_WEIGHT = 0.30
VIBRATION_WEIGHT = 0.35
PRESSURE_WEIGHT = 0.35

# Componentes por debajo de este valor aportan una frase al reason
CONCERN_SCORE = 70.0
CRITICAL_COMPONENT_SCORE = 60.0

OPTIMAL_REASON = "All metrics within normal range. System operating optimally."

# (límite inferior exclusivo, riesgo, estado) evaluado en este orden
_CLASSIFICATION: Tuple[Tuple[float, FailureRisk, HealthStatus], ...] = (
    (30.0, FailureRisk.HIGH, HealthStatus.CRITICAL),
    (50.0, FailureRisk.HIGH, HealthStatus.DEGRADING),
    (70.0, FailureRisk.MEDIUM, HealthStatus.DEGRADING),
)


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _window_or_none(readings: Sequence[SensorReading]) -> WindowStats | None:
    try:
        return compute_window_stats(readings)
    except InsufficientDataError:
        return None


def _temperature_from_stats(stats: WindowStats) -> float:
    score = 100.0

    # Banda ideal 60–80 °C
    if stats.mean_t < 60.0:
        score -= (60.0 - stats.mean_t) * 1.5
    elif stats.mean_t > 80.0:
        score -= (stats.mean_t - 80.0) * 2.5

    if stats.std_dev_t > 5.0:
        score -= min(stats.std_dev_t * 2.0, 20.0)

    if stats.trend_t > 3.0:
        score -= min(stats.trend_t, 15.0)

    return _clamp(score)


def _vibration_from_stats(stats: WindowStats, scale: float) -> float:
    # Las bandas están en escala cruda; la ventana viene normalizada (×scale).
    v_mean = stats.mean_v / scale
    v_max = stats.max_v / scale
    v_std = stats.std_dev_v / scale
    v_trend = stats.trend_v / scale

    score = 100.0

    if v_mean > 0.3:
        score -= (v_mean - 0.3) * 50.0

    if v_max > 0.5:
        score -= (v_max - 0.5) * 40.0

    if v_std > 0.15:
        score -= min(v_std * 30.0, 25.0)

    if v_trend > 0.05:
        score -= min(v_trend * 40.0, 20.0)

    return _clamp(score)


def _pressure_from_stats(stats: WindowStats) -> float:
    score = 100.0

    # Banda ideal 30–40 bar
    if stats.mean_p < 30.0:
        score -= (30.0 - stats.mean_p) * 2.0
    elif stats.mean_p > 40.0:
        score -= (stats.mean_p - 40.0) * 3.0

    if stats.max_p > 50.0:
        score -= (stats.max_p - 50.0) * 2.0

    if stats.std_dev_p > 3.0:
        score -= min(stats.std_dev_p * 3.0, 20.0)

    # Subidas y caídas de presión penalizan igual
    if abs(stats.trend_p) > 2.0:
        score -= min(abs(stats.trend_p) * 2.0, 15.0)

    return _clamp(score)


def score_temperature(readings: Sequence[SensorReading]) -> float:
    stats = _window_or_none(readings)
    if stats is None:
        return NEUTRAL_SCORE
    return _temperature_from_stats(stats)


def score_vibration(
    readings: Sequence[SensorReading],
    scale: float = DEFAULT_VIBRATION_SCALE,
) -> float:
    """Score de vibración sobre lecturas normalizadas (0–100).

    Es el componente con más peso en alertas: la vibración es el mejor
    indicador de falla mecánica.
    """
    stats = _window_or_none(readings)
    if stats is None:
        return NEUTRAL_SCORE
    return _vibration_from_stats(stats, scale)


def score_pressure(readings: Sequence[SensorReading]) -> float:
    stats = _window_or_none(readings)
    if stats is None:
        return NEUTRAL_SCORE
    return _pressure_from_stats(stats)


def classify(health_score: float) -> Tuple[FailureRisk, HealthStatus]:
    """Mapea un score a (riesgo, estado). Exactamente una fila aplica."""
    for upper, risk, status in _CLASSIFICATION:
        if health_score < upper:
            return risk, status
    return FailureRisk.LOW, HealthStatus.STABLE


def _fragment(
    score: float,
    critical: Callable[[], str],
    concern: Callable[[], str],
) -> str | None:
    if score >= CONCERN_SCORE:
        return None
    if score < CRITICAL_COMPONENT_SCORE:
        return critical()
    return concern()


def build_reason(scores: ComponentScores, stats: WindowStats, scale: float) -> str:
    """Arma el reason en orden temperatura → vibración → presión."""
    fragments: List[str | None] = [
        _fragment(
            scores.temperature,
            lambda: f"Critical temperature conditions (avg {stats.mean_t:.1f}°C).",
            lambda: f"Temperature concerns: rising or outside ideal range (avg {stats.mean_t:.1f}°C).",
        ),
        _fragment(
            scores.vibration,
            lambda: f"Critical vibration levels detected (avg {stats.mean_v / scale:.2f}, peak {stats.max_v / scale:.2f}).",
            lambda: f"Vibration levels rising (avg {stats.mean_v / scale:.2f}).",
        ),
        _fragment(
            scores.pressure,
            lambda: f"Critical pressure deviation (avg {stats.mean_p:.1f} bar).",
            lambda: f"Pressure fluctuations detected (avg {stats.mean_p:.1f} bar).",
        ),
    ]
    present = [f for f in fragments if f]
    if not present:
        return OPTIMAL_REASON
    return " ".join(present)


def compute_health(
    readings: Sequence[SensorReading],
    scale: float = DEFAULT_VIBRATION_SCALE,
) -> HealthAssessment:
    """Calcula la salud de una ventana de lecturas (en orden de inserción).

    Sin lecturas devuelve el default optimista {100, LOW, STABLE}: no hay
    evidencia de degradación.
    """
    stats = _window_or_none(readings)
    if stats is None:
        return HealthAssessment(
            health_score=100,
            failure_risk=FailureRisk.LOW,
            status=HealthStatus.STABLE,
            component_scores=ComponentScores(),
            reason=OPTIMAL_REASON,
        )

    scores = ComponentScores(
        temperature=_temperature_from_stats(stats),
        vibration=_vibration_from_stats(stats, scale),
        pressure=_pressure_from_stats(stats),
    )

    weighted = (
        scores.temperature * TEMPERATURE_WEIGHT
        + scores.vibration * VIBRATION_WEIGHT
        + scores.pressure * PRESSURE_WEIGHT
    )
    health_score = max(0, min(100, _round_half_up(weighted)))
    failure_risk, status = classify(health_score)

    return HealthAssessment(
        health_score=health_score,
        failure_risk=failure_risk,
        status=status,
        component_scores=scores,
        reason=build_reason(scores, stats, scale),
    )
