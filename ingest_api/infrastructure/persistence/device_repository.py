"""Registro de dispositivos sobre SQLAlchemy (tabla devices)."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine

from common.scheduling import Clock, SystemClock

from ...core.domain.device import DEFAULT_ALERT_THRESHOLDS, AlertThresholds, DeviceRecord
from ...core.domain.health import DeviceHealthState
from ...errors import PersistenceError

logger = logging.getLogger(__name__)

_UPSERT = text(
    """
    INSERT INTO devices (
        device_id, name, status, location,
        temperature_threshold, vibration_threshold, pressure_threshold, health_score_min,
        health_score, failure_risk, health_status, last_update, created_at
    )
    VALUES (
        :device_id, :device_id, 'ACTIVE', 'Unknown',
        :temperature, :vibration, :pressure, :health_score_min,
        100, 'LOW', 'STABLE', :now, :now
    )
    ON CONFLICT (device_id) DO NOTHING
    """
)

_SELECT = text(
    """
    SELECT device_id, name, status, location,
           temperature_threshold, vibration_threshold, pressure_threshold, health_score_min,
           health_score, failure_risk, health_status, health_reason, last_update
    FROM devices
    WHERE device_id = :device_id
    """
)

_UPDATE_HEALTH = text(
    """
    UPDATE devices
    SET health_score = :health_score,
        failure_risk = :failure_risk,
        health_status = :health_status,
        health_reason = :health_reason,
        last_update = :last_update
    WHERE device_id = :device_id
    """
)

_TOUCH = text("UPDATE devices SET last_update = :now WHERE device_id = :device_id")

_LIST_IDS = text("SELECT device_id FROM devices ORDER BY device_id")


def _to_record(row) -> DeviceRecord:
    return DeviceRecord(
        device_id=row.device_id,
        name=row.name,
        status=row.status,
        location=row.location,
        thresholds=AlertThresholds(
            temperature=float(row.temperature_threshold),
            vibration=float(row.vibration_threshold),
            pressure=float(row.pressure_threshold),
            health_score_min=float(row.health_score_min),
        ),
        health_score=int(row.health_score),
        failure_risk=row.failure_risk,
        health_status=row.health_status,
        health_reason=row.health_reason,
        last_update=(
            datetime.fromtimestamp(float(row.last_update), tz=timezone.utc)
            if row.last_update is not None
            else None
        ),
    )


class SqlDeviceRegistry:
    """Registro de dispositivos con auto-alta idempotente.

    ``ensure_exists`` recuerda los registros ya dados de alta en este proceso
    y para ellos no toca la base. ``update_health`` y ``touch`` mantienen esa
    copia al día; ``get`` siempre lee de la base.
    """

    def __init__(
        self,
        engine: Engine,
        clock: Optional[Clock] = None,
        default_thresholds: AlertThresholds = DEFAULT_ALERT_THRESHOLDS,
    ):
        self._engine = engine
        self._clock = clock or SystemClock()
        self._defaults = default_thresholds
        self._records: Dict[str, DeviceRecord] = {}
        self._records_lock = threading.Lock()

    def ensure_exists(self, device_id: str) -> DeviceRecord:
        with self._records_lock:
            cached = self._records.get(device_id)
        if cached is not None:
            return cached

        self._insert_default(device_id)
        record = self.get(device_id)
        if record is None:
            raise PersistenceError(f"device {device_id} missing after upsert", device_id=device_id)

        with self._records_lock:
            self._records[device_id] = record
        return record

    def _insert_default(self, device_id: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                _UPSERT,
                {
                    "device_id": device_id,
                    "temperature": self._defaults.temperature,
                    "vibration": self._defaults.vibration,
                    "pressure": self._defaults.pressure,
                    "health_score_min": self._defaults.health_score_min,
                    "now": self._clock.now().timestamp(),
                },
            )
        if result.rowcount:
            logger.info("[DB] Auto-created device: %s", device_id)

    def get(self, device_id: str) -> Optional[DeviceRecord]:
        with self._engine.connect() as conn:
            row = conn.execute(_SELECT, {"device_id": device_id}).fetchone()
        return _to_record(row) if row is not None else None

    def update_health(self, state: DeviceHealthState) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                _UPDATE_HEALTH,
                {
                    "device_id": state.device_id,
                    "health_score": state.health_score,
                    "failure_risk": state.failure_risk.value,
                    "health_status": state.status.value,
                    "health_reason": state.reason,
                    "last_update": state.computed_at.timestamp(),
                },
            )
        self._refresh_cached(
            state.device_id,
            health_score=state.health_score,
            failure_risk=state.failure_risk.value,
            health_status=state.status.value,
            health_reason=state.reason,
            last_update=state.computed_at,
        )

    def touch(self, device_id: str) -> None:
        now = self._clock.now()
        with self._engine.begin() as conn:
            conn.execute(_TOUCH, {"device_id": device_id, "now": now.timestamp()})
        self._refresh_cached(device_id, last_update=now)

    def _refresh_cached(self, device_id: str, **changes) -> None:
        with self._records_lock:
            cached = self._records.get(device_id)
            if cached is not None:
                self._records[device_id] = replace(cached, **changes)

    def list_device_ids(self) -> List[str]:
        with self._engine.connect() as conn:
            return [row.device_id for row in conn.execute(_LIST_IDS)]
