"""Fixtures compartidas: reloj falso, scheduler manual, SQLite en memoria."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List

import pytest

from common.config import AlertSettings, MQTTSettings, PipelineSettings, Settings
from common.db import build_engine
from ingest_api.core.domain.reading import SensorReading, normalize_reading
from ingest_api.core.publishing import InMemoryEventPublisher
from ingest_api.infrastructure.persistence import ensure_schema

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, seconds: float) -> None:
        self._now = self._now + timedelta(seconds=seconds)


@dataclass
class ManualTimer:
    due: datetime
    callback: Callable[[], None]
    seq: int
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """TimerFactory determinista: los timers solo disparan con ``advance``."""

    clock: FakeClock
    timers: List[ManualTimer] = field(default_factory=list)

    def after(self, delay_seconds: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(
            due=self.clock.now() + timedelta(seconds=delay_seconds),
            callback=callback,
            seq=len(self.timers),
        )
        self.timers.append(timer)
        return timer

    def pending(self) -> List[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.clock.now() + timedelta(seconds=seconds)
        while True:
            due = [t for t in self.pending() if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.clock.set(max(self.clock.now(), timer.due))
            timer.fired = True
            timer.callback()
        self.clock.set(target)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        redis_url=None,
        api_key=None,
        pipeline=PipelineSettings(),
        alerts=AlertSettings(),
        mqtt=MQTTSettings(),
    )


def make_reading(
    device_id: str = "motor-1",
    temperature: float = 70.0,
    vibration: float = 0.2,
    pressure: float = 35.0,
    at: datetime = T0,
    normalized: bool = True,
) -> SensorReading:
    """Lectura con vibración cruda; por defecto ya normalizada (×100)."""
    reading = SensorReading(
        device_id=device_id,
        temperature=temperature,
        vibration=vibration,
        pressure=pressure,
        timestamp=at,
    )
    return normalize_reading(reading) if normalized else reading


def make_window(
    temperatures: List[float],
    vibrations: List[float],
    pressures: List[float],
    device_id: str = "motor-1",
) -> List[SensorReading]:
    return [
        make_reading(device_id, t, v, p, at=T0 + timedelta(seconds=10 * i))
        for i, (t, v, p) in enumerate(zip(temperatures, vibrations, pressures))
    ]


def healthy_window(device_id: str = "motor-1", size: int = 10) -> List[SensorReading]:
    temps = [69.0, 70.0, 71.0, 70.0, 69.0, 71.0, 70.0, 70.0, 70.0, 70.0][:size]
    vibs = [0.19, 0.20, 0.21, 0.20, 0.19, 0.21, 0.20, 0.20, 0.20, 0.20][:size]
    press = [34.5, 35.0, 35.5, 35.0, 34.5, 35.5, 35.0, 35.0, 35.0, 35.0][:size]
    return make_window(temps, vibs, press, device_id)


def degrading_window(device_id: str = "motor-1") -> List[SensorReading]:
    """Motor degradándose: vibración 16→70 (normalizada), temperatura y presión en alza."""
    temps = [84.0 + 2 * i for i in range(10)]
    vibs = [round(0.16 + 0.06 * i, 2) for i in range(10)]
    press = [38.0 + 2 * i for i in range(10)]
    return make_window(temps, vibs, press, device_id)
