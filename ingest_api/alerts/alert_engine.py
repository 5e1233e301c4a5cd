"""Motor de alertas: creación deduplicada y ciclo de vida.

Toda alerta pasa por ``create_alert``. Dentro de la ventana de dedup (60 s
por defecto) existe a lo sumo una alerta ACTIVE/ACKNOWLEDGED por
``(device_id, trigger_type)``; un duplicado devuelve la existente sin
modificarla.

Ciclo de vida monotónico: ACTIVE → ACKNOWLEDGED → RESOLVED (o
ACTIVE → RESOLVED). Nunca retrocede.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import timedelta
from typing import Callable, List, Optional, Sequence

from common.device_slots import DeviceSlotRegistry
from common.scheduling import Clock

from ..core.domain.alert import (
    Alert,
    AlertSeverity,
    AlertStatus,
    AlertTriggerType,
    SensorSnapshot,
)
from ..core.domain.contracts import AlertRepository, EventPublisher
from ..core.domain.device import AlertThresholds
from ..core.domain.health import DeviceHealthState, FailureRisk, HealthStatus
from ..core.domain.reading import DEFAULT_VIBRATION_SCALE, SensorReading
from ..errors import NotFoundError
from ..metrics import ALERTS
from .threshold_rules import evaluate_thresholds

logger = logging.getLogger(__name__)

ALERTS_TOPIC = "alerts"

DEFAULT_DEDUP_WINDOW_SECONDS = 60.0
DEFAULT_RETENTION_HOURS = 24.0
DEFAULT_LIST_LIMIT = 50


def device_topic(device_id: str) -> str:
    return f"device:{device_id}"


def _new_alert_id() -> str:
    return uuid.uuid4().hex


class AlertEngine:
    def __init__(
        self,
        repository: AlertRepository,
        publisher: EventPublisher,
        clock: Clock,
        dedup_window_seconds: float = DEFAULT_DEDUP_WINDOW_SECONDS,
        retention_hours: float = DEFAULT_RETENTION_HOURS,
        vibration_scale: float = DEFAULT_VIBRATION_SCALE,
        id_factory: Callable[[], str] = _new_alert_id,
    ):
        self._repo = repository
        self._publisher = publisher
        self._clock = clock
        self._dedup_window = timedelta(seconds=dedup_window_seconds)
        self._retention_hours = retention_hours
        self._vibration_scale = vibration_scale
        self._id_factory = id_factory

        # Serializa check+insert por (device_id, trigger_type)
        self._dedup_locks: DeviceSlotRegistry[threading.Lock] = DeviceSlotRegistry(threading.Lock)
        self._lifecycle_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Creación
    # ------------------------------------------------------------------

    def create_alert(
        self,
        device_id: str,
        severity: AlertSeverity,
        trigger_type: AlertTriggerType,
        message: str,
        reason: Optional[str] = None,
        snapshot: Optional[SensorSnapshot] = None,
    ) -> Alert:
        """Crea una alerta o devuelve la abierta dentro de la ventana de dedup."""
        lock = self._dedup_locks.get_or_create(f"{device_id}|{trigger_type.value}")

        with lock:
            now = self._clock.now()
            existing = self._repo.find_open_since(device_id, trigger_type, now - self._dedup_window)
            if existing is not None:
                ALERTS.labels(trigger_type=trigger_type.value, outcome="suppressed").inc()
                logger.info(
                    "[ALERT] Duplicate alert suppressed for %s: %s (existing=%s)",
                    device_id,
                    trigger_type.value,
                    existing.id,
                )
                return existing

            alert = Alert(
                id=self._id_factory(),
                device_id=device_id,
                severity=severity,
                trigger_type=trigger_type,
                message=message,
                reason=reason,
                sensor_snapshot=snapshot or SensorSnapshot(),
                status=AlertStatus.ACTIVE,
                created_at=now,
            )
            self._repo.insert(alert)

        ALERTS.labels(trigger_type=trigger_type.value, outcome="created").inc()
        logger.warning(
            "[ALERT] Alert created for %s: [%s] %s",
            device_id,
            severity.value,
            message,
        )
        self._publish("alert:new", alert)
        return alert

    def on_health_computed(
        self,
        state: DeviceHealthState,
        window: Sequence[SensorReading],
    ) -> Optional[Alert]:
        """Listener de inferencia: alerta si el dispositivo quedó en riesgo."""
        if not state.is_at_risk:
            return None

        severity = (
            AlertSeverity.CRITICAL if state.status == HealthStatus.CRITICAL else AlertSeverity.WARNING
        )
        snapshot = SensorSnapshot(**window[-1].snapshot()) if window else SensorSnapshot()

        return self.create_alert(
            device_id=state.device_id,
            severity=severity,
            trigger_type=AlertTriggerType.FORMULA_PREDICTION,
            message=f"Health Analysis: {state.reason}",
            reason=state.reason,
            snapshot=snapshot,
        )

    def evaluate_thresholds(
        self,
        device_id: str,
        thresholds: AlertThresholds,
        health_score: Optional[float] = None,
        failure_risk: Optional[FailureRisk] = None,
        reading: Optional[SensorReading] = None,
    ) -> List[Alert]:
        """Crea (con dedup) una alerta por cada umbral violado."""
        violations = evaluate_thresholds(
            thresholds,
            health_score=health_score,
            failure_risk=failure_risk,
            reading=reading,
            vibration_scale=self._vibration_scale,
        )
        snapshot = SensorSnapshot(**reading.snapshot()) if reading is not None else SensorSnapshot()

        return [
            self.create_alert(
                device_id=device_id,
                severity=v.severity,
                trigger_type=v.trigger_type,
                message=v.message,
                snapshot=snapshot,
            )
            for v in violations
        ]

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def _require(self, alert_id: str) -> Alert:
        alert = self._repo.get(alert_id)
        if alert is None:
            raise NotFoundError("Alert", alert_id)
        return alert

    def acknowledge(self, alert_id: str, actor: Optional[str] = None) -> Alert:
        with self._lifecycle_lock:
            alert = self._require(alert_id)
            if alert.status != AlertStatus.ACTIVE:
                # Re-ack o alerta ya resuelta: no-op
                return alert

            alert.status = AlertStatus.ACKNOWLEDGED
            alert.acknowledged_by = actor
            alert.acknowledged_at = self._clock.now()
            self._repo.update_status(alert)

        logger.info("[ALERT] Alert acknowledged: %s by=%s", alert_id, actor)
        self._publish("alert:acknowledged", alert)
        return alert

    def resolve(self, alert_id: str) -> Alert:
        with self._lifecycle_lock:
            alert = self._require(alert_id)
            if alert.status == AlertStatus.RESOLVED:
                return alert

            alert.status = AlertStatus.RESOLVED
            alert.resolved_at = self._clock.now()
            self._repo.update_status(alert)

        logger.info("[ALERT] Alert resolved: %s", alert_id)
        self._publish("alert:resolved", alert)
        return alert

    def cleanup(self, older_than_hours: Optional[float] = None) -> int:
        """Borra alertas RESOLVED creadas antes del corte. Retorna cuántas."""
        hours = self._retention_hours if older_than_hours is None else older_than_hours
        cutoff = self._clock.now() - timedelta(hours=hours)
        deleted = self._repo.delete_resolved_before(cutoff)
        logger.info("[ALERT] Cleaned up %d resolved alerts", deleted)
        return deleted

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def get(self, alert_id: str) -> Alert:
        return self._require(alert_id)

    def list_active(self, limit: int = DEFAULT_LIST_LIMIT) -> List[Alert]:
        return self._repo.list_by_status([AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED], limit)

    def list_for_device(self, device_id: str, limit: int = DEFAULT_LIST_LIMIT) -> List[Alert]:
        return self._repo.list_for_device(device_id, limit)

    def _publish(self, name: str, alert: Alert) -> None:
        event = {"event": name, **alert.to_event()}
        for topic in (ALERTS_TOPIC, device_topic(alert.device_id)):
            try:
                self._publisher.publish(topic, event)
            except Exception:
                logger.exception("[ALERT] Publish failed topic=%s event=%s", topic, name)
