"""Repositorio de alertas sobre SQLAlchemy (tabla alerts)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from ...core.domain.alert import (
    Alert,
    AlertSeverity,
    AlertStatus,
    AlertTriggerType,
    SensorSnapshot,
)

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, device_id, severity, trigger_type, message, reason,
    temperature, vibration, pressure, status, created_at,
    acknowledged_by, acknowledged_at, resolved_at
"""

_INSERT = text(
    f"""
    INSERT INTO alerts ({_COLUMNS})
    VALUES (
        :id, :device_id, :severity, :trigger_type, :message, :reason,
        :temperature, :vibration, :pressure, :status, :created_at,
        :acknowledged_by, :acknowledged_at, :resolved_at
    )
    """
)

_SELECT_BY_ID = text(f"SELECT {_COLUMNS} FROM alerts WHERE id = :id")

_SELECT_OPEN_SINCE = text(
    f"""
    SELECT {_COLUMNS}
    FROM alerts
    WHERE device_id = :device_id
      AND trigger_type = :trigger_type
      AND status IN ('ACTIVE', 'ACKNOWLEDGED')
      AND created_at >= :since
    ORDER BY created_at DESC
    LIMIT 1
    """
)

_UPDATE_STATUS = text(
    """
    UPDATE alerts
    SET status = :status,
        acknowledged_by = :acknowledged_by,
        acknowledged_at = :acknowledged_at,
        resolved_at = :resolved_at
    WHERE id = :id
    """
)

_DELETE_RESOLVED = text(
    "DELETE FROM alerts WHERE status = 'RESOLVED' AND created_at < :cutoff"
)

_SELECT_BY_STATUS = text(
    f"""
    SELECT {_COLUMNS}
    FROM alerts
    WHERE status IN :statuses
    ORDER BY created_at DESC
    LIMIT :limit
    """
).bindparams(bindparam("statuses", expanding=True))

_SELECT_FOR_DEVICE = text(
    f"""
    SELECT {_COLUMNS}
    FROM alerts
    WHERE device_id = :device_id
    ORDER BY created_at DESC
    LIMIT :limit
    """
)


def _epoch(value: Optional[datetime]) -> Optional[float]:
    return value.timestamp() if value is not None else None


def _dt(value) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value), tz=timezone.utc)


def _to_params(alert: Alert) -> dict:
    return {
        "id": alert.id,
        "device_id": alert.device_id,
        "severity": alert.severity.value,
        "trigger_type": alert.trigger_type.value,
        "message": alert.message,
        "reason": alert.reason,
        "temperature": alert.sensor_snapshot.temperature,
        "vibration": alert.sensor_snapshot.vibration,
        "pressure": alert.sensor_snapshot.pressure,
        "status": alert.status.value,
        "created_at": alert.created_at.timestamp(),
        "acknowledged_by": alert.acknowledged_by,
        "acknowledged_at": _epoch(alert.acknowledged_at),
        "resolved_at": _epoch(alert.resolved_at),
    }


def _to_alert(row) -> Alert:
    return Alert(
        id=row.id,
        device_id=row.device_id,
        severity=AlertSeverity(row.severity),
        trigger_type=AlertTriggerType(row.trigger_type),
        message=row.message,
        reason=row.reason,
        sensor_snapshot=SensorSnapshot(
            temperature=row.temperature,
            vibration=row.vibration,
            pressure=row.pressure,
        ),
        status=AlertStatus(row.status),
        created_at=_dt(row.created_at),
        acknowledged_by=row.acknowledged_by,
        acknowledged_at=_dt(row.acknowledged_at),
        resolved_at=_dt(row.resolved_at),
    )


class SqlAlertRepository:
    def __init__(self, engine: Engine):
        self._engine = engine

    def insert(self, alert: Alert) -> None:
        with self._engine.begin() as conn:
            conn.execute(_INSERT, _to_params(alert))

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._engine.connect() as conn:
            row = conn.execute(_SELECT_BY_ID, {"id": alert_id}).fetchone()
        return _to_alert(row) if row is not None else None

    def find_open_since(
        self,
        device_id: str,
        trigger_type: AlertTriggerType,
        since: datetime,
    ) -> Optional[Alert]:
        with self._engine.connect() as conn:
            row = conn.execute(
                _SELECT_OPEN_SINCE,
                {
                    "device_id": device_id,
                    "trigger_type": trigger_type.value,
                    "since": since.timestamp(),
                },
            ).fetchone()
        return _to_alert(row) if row is not None else None

    def update_status(self, alert: Alert) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                _UPDATE_STATUS,
                {
                    "id": alert.id,
                    "status": alert.status.value,
                    "acknowledged_by": alert.acknowledged_by,
                    "acknowledged_at": _epoch(alert.acknowledged_at),
                    "resolved_at": _epoch(alert.resolved_at),
                },
            )

    def delete_resolved_before(self, cutoff: datetime) -> int:
        with self._engine.begin() as conn:
            result = conn.execute(_DELETE_RESOLVED, {"cutoff": cutoff.timestamp()})
        deleted = result.rowcount or 0
        logger.info("[DB] Deleted %d resolved alerts older than %s", deleted, cutoff.isoformat())
        return deleted

    def list_by_status(self, statuses: Sequence[AlertStatus], limit: int) -> List[Alert]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                _SELECT_BY_STATUS,
                {"statuses": [s.value for s in statuses], "limit": limit},
            ).fetchall()
        return [_to_alert(r) for r in rows]

    def list_for_device(self, device_id: str, limit: int) -> List[Alert]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                _SELECT_FOR_DEVICE,
                {"device_id": device_id, "limit": limit},
            ).fetchall()
        return [_to_alert(r) for r in rows]
