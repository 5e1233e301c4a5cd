"""Reloj y timers inyectables.

El pipeline nunca llama a ``datetime.now()`` ni crea ``threading.Timer``
directamente: recibe un ``Clock`` y un ``TimerFactory``. En producción se usan
las implementaciones de este módulo; en tests, un scheduler manual.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime:
        """Instante actual (tz-aware, UTC)."""
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Cancela el timer. Cancelar un timer ya disparado es un no-op."""
        ...


class TimerFactory(Protocol):
    def after(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        """Programa ``callback`` una sola vez tras ``delay_seconds``."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ThreadingTimerFactory:
    """Timers one-shot sobre ``threading.Timer`` (threads daemon)."""

    def __init__(self, name_prefix: str = "timer") -> None:
        self._name_prefix = name_prefix

    def after(self, delay_seconds: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay_seconds, self._run, args=(callback,))
        timer.daemon = True
        timer.name = f"{self._name_prefix}-{timer.name}"
        timer.start()
        return timer

    @staticmethod
    def _run(callback: Callable[[], None]) -> None:
        # Una excepción aquí mataría el thread sin dejar rastro.
        try:
            callback()
        except Exception:
            logger.exception("[TIMER] Callback failed")
