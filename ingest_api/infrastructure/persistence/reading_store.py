"""Store de lecturas sobre SQLAlchemy (tabla sensor_readings)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine

from ...core.domain.reading import SensorReading

logger = logging.getLogger(__name__)

_INSERT = text(
    """
    INSERT INTO sensor_readings (device_id, temperature, vibration, pressure, ts)
    VALUES (:device_id, :temperature, :vibration, :pressure, :ts)
    """
)

_SELECT_WINDOW = text(
    """
    SELECT device_id, temperature, vibration, pressure, ts
    FROM sensor_readings
    WHERE device_id = :device_id AND ts >= :since
    ORDER BY ts ASC
    """
)

_SELECT_LATEST = text(
    """
    SELECT device_id, temperature, vibration, pressure, ts
    FROM sensor_readings
    WHERE device_id = :device_id
    ORDER BY ts DESC
    LIMIT 1
    """
)

_AGGREGATE = text(
    """
    SELECT
        COUNT(*)          AS sample_count,
        AVG(temperature)  AS avg_temperature,
        MIN(temperature)  AS min_temperature,
        MAX(temperature)  AS max_temperature,
        AVG(vibration)    AS avg_vibration,
        MIN(vibration)    AS min_vibration,
        MAX(vibration)    AS max_vibration,
        AVG(pressure)     AS avg_pressure,
        MIN(pressure)     AS min_pressure,
        MAX(pressure)     AS max_pressure,
        MAX(ts)           AS latest_ts
    FROM sensor_readings
    WHERE device_id = :device_id AND ts >= :since
    """
)


class SqlReadingStore:
    """Persistencia de lecturas normalizadas.

    Los timestamps se guardan como epoch en segundos, así el mismo SQL
    funciona en SQLite y PostgreSQL.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    def bulk_insert(self, readings: Sequence[SensorReading]) -> int:
        if not readings:
            return 0
        rows = [r.to_row() for r in readings]
        with self._engine.begin() as conn:
            conn.execute(_INSERT, rows)
        logger.debug("[DB] Inserted %d readings", len(rows))
        return len(rows)

    def query_window(self, device_id: str, since: datetime) -> List[SensorReading]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                _SELECT_WINDOW,
                {"device_id": device_id, "since": since.timestamp()},
            ).fetchall()
        return [SensorReading.from_row(r) for r in rows]

    def latest(self, device_id: str) -> Optional[SensorReading]:
        with self._engine.connect() as conn:
            row = conn.execute(_SELECT_LATEST, {"device_id": device_id}).fetchone()
        return SensorReading.from_row(row) if row is not None else None

    def aggregate_stats(self, device_id: str, since: datetime) -> Optional[dict]:
        """Promedio/mín/máx por sensor desde ``since``. None si no hay datos."""
        with self._engine.connect() as conn:
            row = conn.execute(
                _AGGREGATE,
                {"device_id": device_id, "since": since.timestamp()},
            ).mappings().fetchone()

        if row is None or not row["sample_count"]:
            return None

        stats = {k: (float(v) if v is not None else None) for k, v in row.items()}
        stats["sample_count"] = int(row["sample_count"])
        return stats
