"""Monitor periódico de umbrales por dispositivo.

Cada iteración recorre los dispositivos registrados y evalúa la última
lectura persistida y la salud vigente contra los umbrales del dispositivo.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, List, Optional

from ..core.domain.alert import Alert
from ..core.domain.contracts import DeviceRegistry, ReadingStore
from ..core.domain.health import DeviceHealthState, FailureRisk
from .alert_engine import AlertEngine

logger = logging.getLogger(__name__)

HealthLookup = Callable[[str], Optional[DeviceHealthState]]


class ThresholdMonitor:
    def __init__(
        self,
        engine: AlertEngine,
        registry: DeviceRegistry,
        store: ReadingStore,
        health_lookup: HealthLookup,
        interval_seconds: float = 60.0,
    ):
        self._engine = engine
        self._registry = registry
        self._store = store
        self._health_lookup = health_lookup
        self._interval = interval_seconds

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def evaluate_device(self, device_id: str) -> List[Alert]:
        record = self._registry.get(device_id)
        if record is None:
            logger.warning("[ALERT] Device %s not found for alert evaluation", device_id)
            return []

        state = self._health_lookup(device_id)
        if state is not None:
            health_score, failure_risk = state.health_score, state.failure_risk
        else:
            # Sin inferencia en este proceso: usa lo persistido
            health_score, failure_risk = record.health_score, FailureRisk(record.failure_risk)

        return self._engine.evaluate_thresholds(
            device_id,
            record.thresholds,
            health_score=health_score,
            failure_risk=failure_risk,
            reading=self._store.latest(device_id),
        )

    def run_once(self) -> Dict[str, List[Alert]]:
        """Evalúa todos los dispositivos. Un fallo no corta la iteración."""
        results: Dict[str, List[Alert]] = {}
        for device_id in self._registry.list_device_ids():
            try:
                results[device_id] = self.evaluate_device(device_id)
            except Exception:
                logger.exception("[ALERT] Threshold evaluation failed device=%s", device_id)
        return results

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="threshold-monitor", daemon=True)
        self._thread.start()
        logger.info("[ALERT] Threshold monitor started interval=%.1fs", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("[ALERT] Threshold monitor stopped")

    def _loop(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.run_once()
