"""Cola de persistencia en batch por dispositivo.

Acumula lecturas normalizadas por dispositivo y las inserta en bloque:

- Flush por cantidad (``batch_size``) en el mismo thread que agrega.
- Flush por tiempo (``timeout_seconds``) con un timer one-shot armado al
  llegar la primera lectura a una cola vacía. Un flush no rearma el timer.
- Durabilidad at-most-once: si el bulk insert falla se loggea y el batch se
  descarta (no se reencola). Reintentar bloquearía la ingesta en vivo y el
  buffer crecería sin límite durante una caída del store.
- ``flush_all()`` drena todas las colas al apagar (best-effort).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from common.device_slots import DeviceSlotRegistry
from common.scheduling import TimerFactory, TimerHandle

from .core.domain.contracts import ReadingStore
from .core.domain.reading import SensorReading
from .errors import PersistenceError
from .metrics import BATCH_FLUSHES, BATCH_READINGS_DROPPED

logger = logging.getLogger(__name__)


@dataclass
class FlushResult:
    """Resultado de un flush; ``error`` es None si se persistió."""
    device_id: str
    count: int
    error: Optional[PersistenceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class _BatchSlot:
    lock: threading.RLock = field(default_factory=threading.RLock)
    readings: List[SensorReading] = field(default_factory=list)
    timer: Optional[TimerHandle] = None
    timer_token: int = 0


class BatchPersistenceQueue:
    """Cola de lecturas por dispositivo con flush por tamaño o tiempo."""

    DEFAULT_BATCH_SIZE = 10
    DEFAULT_TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        store: ReadingStore,
        timers: TimerFactory,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        on_flushed: Optional[Callable[[str, int], None]] = None,
    ):
        """Inicializa la cola.

        Args:
            store: Store con ``bulk_insert``
            timers: Fábrica de timers one-shot
            batch_size: Lecturas por dispositivo que disparan el flush
            timeout_seconds: Tiempo máximo que una lectura espera en cola
            on_flushed: Callback opcional ``(device_id, count)`` tras un flush OK
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        self._store = store
        self._timers = timers
        self._batch_size = batch_size
        self._timeout_seconds = timeout_seconds
        self._on_flushed = on_flushed

        self._slots: DeviceSlotRegistry[_BatchSlot] = DeviceSlotRegistry(_BatchSlot)

        # Métricas
        self._stats_lock = threading.Lock()
        self._total_buffered = 0
        self._total_flushed = 0
        self._total_dropped = 0

    def add(self, reading: SensorReading) -> Optional[FlushResult]:
        """Agrega una lectura a la cola de su dispositivo.

        Returns:
            El resultado del flush si esta lectura completó el batch.
        """
        slot = self._slots.get_or_create(reading.device_id)

        with slot.lock:
            if not slot.readings and slot.timer is None:
                self._arm_timer(reading.device_id, slot)

            slot.readings.append(reading)
            with self._stats_lock:
                self._total_buffered += 1

            if len(slot.readings) >= self._batch_size:
                return self._flush(reading.device_id, slot)

        return None

    def flush(self, device_id: str) -> Optional[FlushResult]:
        """Flush inmediato de un dispositivo (None si no hay pendientes)."""
        slot = self._slots.get(device_id)
        if slot is None:
            return None
        with slot.lock:
            if not slot.readings:
                return None
            return self._flush(device_id, slot)

    def flush_all(self) -> List[FlushResult]:
        """Drena todas las colas. Los errores se loggean y se sigue."""
        results: List[FlushResult] = []
        for device_id in self._slots.device_ids():
            try:
                result = self.flush(device_id)
            except Exception:
                logger.exception("[BATCH] flush_all failed device=%s", device_id)
                continue
            if result is not None:
                results.append(result)

        logger.info(
            "[BATCH] All batches flushed: devices=%d readings=%d failed=%d",
            len(results),
            sum(r.count for r in results),
            sum(1 for r in results if not r.ok),
        )
        return results

    def pending(self, device_id: str) -> int:
        slot = self._slots.get(device_id)
        if slot is None:
            return 0
        with slot.lock:
            return len(slot.readings)

    def has_timer(self, device_id: str) -> bool:
        slot = self._slots.get(device_id)
        if slot is None:
            return False
        with slot.lock:
            return slot.timer is not None

    def _arm_timer(self, device_id: str, slot: _BatchSlot) -> None:
        slot.timer_token += 1
        token = slot.timer_token
        slot.timer = self._timers.after(
            self._timeout_seconds,
            lambda: self._on_timeout(device_id, token),
        )

    def _on_timeout(self, device_id: str, token: int) -> Optional[FlushResult]:
        slot = self._slots.get(device_id)
        if slot is None:
            return None

        with slot.lock:
            if token != slot.timer_token:
                return None
            slot.timer = None
            if not slot.readings:
                return None
            return self._flush(device_id, slot)

    def _flush(self, device_id: str, slot: _BatchSlot) -> FlushResult:
        """Ejecuta el bulk insert de la cola del dispositivo (con slot.lock tomado)."""
        to_flush = list(slot.readings)
        slot.readings.clear()
        if slot.timer is not None:
            slot.timer.cancel()
            slot.timer = None
        slot.timer_token += 1

        try:
            self._store.bulk_insert(to_flush)
        except Exception as e:
            error = PersistenceError(
                f"bulk insert failed for {device_id}: {e}",
                device_id=device_id,
                dropped=len(to_flush),
            )
            logger.error(
                "[BATCH] Batch processing error device=%s dropped=%d err=%s",
                device_id,
                len(to_flush),
                e,
            )
            with self._stats_lock:
                self._total_dropped += len(to_flush)
            BATCH_FLUSHES.labels(status="failed").inc()
            BATCH_READINGS_DROPPED.inc(len(to_flush))
            return FlushResult(device_id=device_id, count=len(to_flush), error=error)

        with self._stats_lock:
            self._total_flushed += len(to_flush)
        BATCH_FLUSHES.labels(status="success").inc()
        logger.info("[BATCH] Batch processed: %s | %d records saved", device_id, len(to_flush))

        if self._on_flushed is not None:
            try:
                self._on_flushed(device_id, len(to_flush))
            except Exception:
                logger.exception("[BATCH] on_flushed callback failed device=%s", device_id)

        return FlushResult(device_id=device_id, count=len(to_flush))

    def get_stats(self) -> dict:
        """Retorna estadísticas de la cola."""
        with self._stats_lock:
            return {
                "devices": len(self._slots),
                "total_buffered": self._total_buffered,
                "total_flushed": self._total_flushed,
                "total_dropped": self._total_dropped,
                "batch_size": self._batch_size,
                "timeout_seconds": self._timeout_seconds,
            }
