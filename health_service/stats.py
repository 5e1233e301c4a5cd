from __future__ import annotations

from dataclasses import dataclass
from statistics import fmean, pstdev
from typing import Sequence

from ingest_api.core.domain.reading import SensorReading
from ingest_api.errors import InsufficientDataError

TREND_POINTS = 3


@dataclass(frozen=True)
class WindowStats:
    """Estadísticos agregados de una ventana de lecturas (timeline).

    Se calculan sobre la ventana completa en orden de inserción.

    Además de media/mínimo/máximo expone la desviación estándar poblacional
    (sin Bessel) y la tendencia simple: promedio de los últimos 3 valores
    menos promedio de los primeros 3. Con menos de 3 lecturas la tendencia
    es 0 y los componentes que la usan no penalizan.
    """

    count: int

    mean_t: float
    mean_v: float
    mean_p: float

    min_t: float
    min_v: float
    min_p: float

    max_t: float
    max_v: float
    max_p: float

    std_dev_t: float
    std_dev_v: float
    std_dev_p: float

    trend_t: float
    trend_v: float
    trend_p: float


def mean(values: Sequence[float]) -> float:
    if not values:
        raise InsufficientDataError("mean of empty series")
    return fmean(values)


def population_std_dev(values: Sequence[float]) -> float:
    if not values:
        raise InsufficientDataError("std_dev of empty series")
    return pstdev(values)


def trend(values: Sequence[float]) -> float:
    """avg(últimos 3) - avg(primeros 3); 0 si hay menos de 3 valores."""
    if not values:
        raise InsufficientDataError("trend of empty series")
    if len(values) < TREND_POINTS:
        return 0.0
    return mean(values[-TREND_POINTS:]) - mean(values[:TREND_POINTS])


def compute_window_stats(readings: Sequence[SensorReading]) -> WindowStats:
    """Calcula los agregados de una ventana.

    Raises:
        InsufficientDataError: si ``readings`` está vacío.
    """
    if not readings:
        raise InsufficientDataError("no readings in window")

    temps = [float(r.temperature) for r in readings]
    vibs = [float(r.vibration) for r in readings]
    press = [float(r.pressure) for r in readings]

    return WindowStats(
        count=len(readings),
        mean_t=mean(temps),
        mean_v=mean(vibs),
        mean_p=mean(press),
        min_t=min(temps),
        min_v=min(vibs),
        min_p=min(press),
        max_t=max(temps),
        max_v=max(vibs),
        max_p=max(press),
        std_dev_t=population_std_dev(temps),
        std_dev_v=population_std_dev(vibs),
        std_dev_p=population_std_dev(press),
        trend_t=trend(temps),
        trend_v=trend(vibs),
        trend_p=trend(press),
    )
