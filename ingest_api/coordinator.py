"""Coordinador de ingesta: punto de entrada único de lecturas.

Flujo por lectura:

    payload → validar → alta de dispositivo → normalizar vibración
            → evento ``sensor:update`` → Timeline Buffer → Batch Queue

Timeline y batch son efectos independientes: si uno falla el otro igual
corre. Los fallos de efectos laterales se devuelven en ``IngestAck.errors``;
solo la validación se propaga como excepción.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from health_service.timeline_buffer import InferenceOutcome, TimelineBufferManager

from .alerts.alert_engine import AlertEngine, device_topic
from .batch_queue import BatchPersistenceQueue, FlushResult
from .core.domain.alert import Alert
from .core.domain.contracts import DeviceRegistry, EventPublisher
from .core.domain.health import DeviceHealthState
from .core.domain.reading import DEFAULT_VIBRATION_SCALE, SensorReading, normalize_reading
from .core.validation.reading_validator import ReadingValidator
from .errors import ValidationError
from .metrics import READINGS_INGESTED

logger = logging.getLogger(__name__)


@dataclass
class IngestAck:
    device_id: str
    reading: SensorReading
    inference: Optional[InferenceOutcome] = None
    flush: Optional[FlushResult] = None
    errors: List[Exception] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class IngestionCoordinator:
    def __init__(
        self,
        registry: DeviceRegistry,
        timeline: TimelineBufferManager,
        batch_queue: BatchPersistenceQueue,
        alerts: AlertEngine,
        publisher: EventPublisher,
        validator: Optional[ReadingValidator] = None,
        vibration_scale: float = DEFAULT_VIBRATION_SCALE,
    ):
        self._registry = registry
        self._timeline = timeline
        self._batch_queue = batch_queue
        self._alerts = alerts
        self._publisher = publisher
        self._validator = validator or ReadingValidator()
        self._vibration_scale = vibration_scale

        # Orden: estado del dispositivo primero, alertas después
        self._timeline.add_listener(self._on_health_computed)
        self._timeline.add_listener(self._alerts.on_health_computed)

    @property
    def timeline(self) -> TimelineBufferManager:
        return self._timeline

    @property
    def batch_queue(self) -> BatchPersistenceQueue:
        return self._batch_queue

    @property
    def alerts(self) -> AlertEngine:
        return self._alerts

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def ingest(self, payload: Any) -> IngestAck:
        """Procesa una lectura cruda (dict, modelo pydantic o SensorReading).

        Raises:
            ValidationError: si faltan deviceId o alguno de los campos numéricos.
        """
        try:
            raw = self._validator.validate(payload)
        except ValidationError as e:
            READINGS_INGESTED.labels(status="rejected").inc()
            logger.warning("[INGEST] Reading rejected: %s", e)
            raise

        errors: List[Exception] = []

        try:
            self._registry.ensure_exists(raw.device_id)
        except Exception as e:
            logger.exception("[INGEST] Device registration failed device=%s", raw.device_id)
            errors.append(e)

        reading = normalize_reading(raw, self._vibration_scale)
        ack = IngestAck(device_id=reading.device_id, reading=reading, errors=errors)

        self._publish(
            device_topic(reading.device_id),
            {
                "event": "sensor:update",
                "deviceId": raw.device_id,
                "temperature": raw.temperature,
                "vibration": raw.vibration,
                "pressure": raw.pressure,
                "timestamp": raw.timestamp.isoformat(),
            },
        )

        try:
            ack.inference = self._timeline.add(reading)
            if ack.inference is not None:
                ack.errors.extend(ack.inference.errors)
        except Exception as e:
            logger.exception("[INGEST] Timeline buffer failed device=%s", reading.device_id)
            ack.errors.append(e)

        try:
            ack.flush = self._batch_queue.add(reading)
            if ack.flush is not None and ack.flush.error is not None:
                ack.errors.append(ack.flush.error)
        except Exception as e:
            logger.exception("[INGEST] Batch queue failed device=%s", reading.device_id)
            ack.errors.append(e)

        READINGS_INGESTED.labels(status="accepted").inc()
        logger.debug(
            "[INGEST] Reading accepted device=%s errors=%d",
            reading.device_id,
            len(ack.errors),
        )
        return ack

    def get_health_state(self, device_id: str) -> Optional[DeviceHealthState]:
        return self._timeline.get_health_state(device_id)

    def acknowledge_alert(self, alert_id: str, actor: Optional[str] = None) -> Alert:
        return self._alerts.acknowledge(alert_id, actor)

    def resolve_alert(self, alert_id: str) -> Alert:
        return self._alerts.resolve(alert_id)

    def flush_all(self) -> List[FlushResult]:
        """Hook de apagado: persiste todo lo pendiente en las colas."""
        return self._batch_queue.flush_all()

    def _on_health_computed(
        self,
        state: DeviceHealthState,
        window: Sequence[SensorReading],
    ) -> None:
        self._registry.update_health(state)
        self._publish(
            device_topic(state.device_id),
            {"event": "device:health", "deviceId": state.device_id, **state.to_event()},
        )

    def _publish(self, topic: str, event: dict) -> None:
        try:
            self._publisher.publish(topic, event)
        except Exception:
            logger.exception("[INGEST] Publish failed topic=%s", topic)
