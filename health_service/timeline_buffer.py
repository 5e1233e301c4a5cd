"""Timeline buffer por dispositivo: decide cuándo correr la inferencia.

Máquina de estados por dispositivo:

    EMPTY → ACCUMULATING → (lleno | timer) → INFERRING → EMPTY

- Primera lectura con buffer vacío y sin timer pendiente: se arma un timer
  one-shot de ``timeout_seconds``.
- Si tras el append el buffer llega a ``window_size`` la inferencia corre en
  el mismo thread, sin esperar el timer.
- Si el timer dispara con lecturas pendientes, se infiere con la ventana
  parcial.
- Tras inferir se vacía el buffer y se cancela el timer. Solo el drain por
  tamaño rearma un timer nuevo (cadencia ~3 min con tráfico continuo); el
  drain por timeout vuelve a EMPTY y espera la próxima lectura.

Hay como máximo un timer por dispositivo: el handle vive en el slot junto al
buffer y cada timer lleva un token de generación, así un disparo viejo que no
se pudo cancelar a tiempo se ignora.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from common.device_slots import DeviceSlotRegistry
from common.scheduling import Clock, TimerFactory, TimerHandle
from ingest_api.core.domain.health import DeviceHealthState
from ingest_api.core.domain.reading import DEFAULT_VIBRATION_SCALE, SensorReading
from ingest_api.metrics import INFERENCE_RUNS

from .scoring import compute_health

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 10
DEFAULT_TIMEOUT_SECONDS = 180.0

# listener(state, ventana) - se llama tras cada inferencia
InferenceListener = Callable[[DeviceHealthState, Sequence[SensorReading]], None]


class InferenceTrigger(str, Enum):
    SIZE = "size"
    TIMEOUT = "timeout"


@dataclass
class InferenceOutcome:
    """Resultado inspeccionable de un ciclo de inferencia."""
    device_id: str
    trigger: InferenceTrigger
    window_size: int
    state: Optional[DeviceHealthState] = None
    rearmed: bool = False
    errors: List[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is not None and not self.errors


@dataclass
class _TimelineSlot:
    lock: threading.RLock = field(default_factory=threading.RLock)
    readings: List[SensorReading] = field(default_factory=list)
    timer: Optional[TimerHandle] = None
    timer_token: int = 0


class TimelineBufferManager:
    """Gestor de timelines por dispositivo y dueño del DeviceHealthState."""

    def __init__(
        self,
        clock: Clock,
        timers: TimerFactory,
        listeners: Sequence[InferenceListener] = (),
        window_size: int = DEFAULT_WINDOW_SIZE,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        vibration_scale: float = DEFAULT_VIBRATION_SCALE,
    ):
        if window_size < 1:
            raise ValueError("window_size must be >= 1")

        self._clock = clock
        self._timers = timers
        self._listeners: List[InferenceListener] = list(listeners)
        self._window_size = window_size
        self._timeout_seconds = timeout_seconds
        self._vibration_scale = vibration_scale

        self._slots: DeviceSlotRegistry[_TimelineSlot] = DeviceSlotRegistry(_TimelineSlot)
        self._states: Dict[str, DeviceHealthState] = {}
        self._states_lock = threading.Lock()

    @property
    def window_size(self) -> int:
        return self._window_size

    def add_listener(self, listener: InferenceListener) -> None:
        self._listeners.append(listener)

    def add(self, reading: SensorReading) -> Optional[InferenceOutcome]:
        """Agrega una lectura normalizada al timeline de su dispositivo.

        Returns:
            El resultado de la inferencia si esta lectura completó la ventana,
            None en caso contrario.
        """
        slot = self._slots.get_or_create(reading.device_id)

        with slot.lock:
            if not slot.readings and slot.timer is None:
                self._arm_timer(reading.device_id, slot)

            slot.readings.append(reading)

            if len(slot.readings) >= self._window_size:
                return self._infer(reading.device_id, slot, InferenceTrigger.SIZE)

        return None

    def get_health_state(self, device_id: str) -> Optional[DeviceHealthState]:
        with self._states_lock:
            return self._states.get(device_id)

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

    def device_ids(self) -> List[str]:
        return self._slots.device_ids()

    def _arm_timer(self, device_id: str, slot: _TimelineSlot) -> None:
        slot.timer_token += 1
        token = slot.timer_token
        slot.timer = self._timers.after(
            self._timeout_seconds,
            lambda: self._on_timeout(device_id, token),
        )

    def _cancel_timer(self, slot: _TimelineSlot) -> None:
        if slot.timer is not None:
            slot.timer.cancel()
            slot.timer = None
        # Invalida cualquier disparo en vuelo
        slot.timer_token += 1

    def _on_timeout(self, device_id: str, token: int) -> Optional[InferenceOutcome]:
        slot = self._slots.get(device_id)
        if slot is None:
            return None

        with slot.lock:
            if token != slot.timer_token:
                logger.debug("[TIMELINE] Stale timer ignored device=%s", device_id)
                return None

            slot.timer = None

            if not slot.readings:
                # Timer de cadencia sin lecturas nuevas: vuelve a EMPTY
                return None

            return self._infer(device_id, slot, InferenceTrigger.TIMEOUT)

    def _infer(
        self,
        device_id: str,
        slot: _TimelineSlot,
        trigger: InferenceTrigger,
    ) -> InferenceOutcome:
        # Se llama con slot.lock tomado: una sola inferencia por dispositivo a la vez.
        window = list(slot.readings)
        outcome = InferenceOutcome(device_id=device_id, trigger=trigger, window_size=len(window))

        try:
            assessment = compute_health(window, scale=self._vibration_scale)
            state = DeviceHealthState.from_assessment(
                device_id,
                assessment,
                computed_at=self._clock.now(),
                window_size=len(window),
            )
            with self._states_lock:
                self._states[device_id] = state
            outcome.state = state

            logger.info(
                "[TIMELINE] %s: Health=%d Risk=%s Status=%s trigger=%s readings=%d",
                device_id,
                state.health_score,
                state.failure_risk.value,
                state.status.value,
                trigger.value,
                len(window),
            )

            for listener in self._listeners:
                try:
                    listener(state, window)
                except Exception as e:
                    logger.exception("[TIMELINE] Inference listener failed device=%s", device_id)
                    outcome.errors.append(e)

        except Exception as e:
            logger.exception("[TIMELINE] Inference failed device=%s", device_id)
            outcome.errors.append(e)

        finally:
            # Siempre se limpia, aunque falle: nunca queda ACCUMULATING trabado.
            slot.readings.clear()
            self._cancel_timer(slot)
            if trigger == InferenceTrigger.SIZE and len(window) >= self._window_size:
                self._arm_timer(device_id, slot)
                outcome.rearmed = True

        INFERENCE_RUNS.labels(trigger=trigger.value, status="ok" if outcome.ok else "error").inc()
        return outcome
