"""Contratos de los colaboradores externos del pipeline.

El core solo depende de estas interfaces; las implementaciones concretas
(SQLAlchemy, Redis, memoria) viven en infrastructure/ y core/redis/.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from .alert import Alert, AlertStatus, AlertTriggerType
from .device import DeviceRecord
from .health import DeviceHealthState
from .reading import SensorReading


class DeviceRegistry(Protocol):
    def ensure_exists(self, device_id: str) -> DeviceRecord:
        """Upsert idempotente con umbrales por defecto."""
        ...

    def get(self, device_id: str) -> Optional[DeviceRecord]:
        ...

    def update_health(self, state: DeviceHealthState) -> None:
        ...

    def touch(self, device_id: str) -> None:
        """Actualiza last_update del dispositivo."""
        ...

    def list_device_ids(self) -> List[str]:
        ...


class ReadingStore(Protocol):
    def bulk_insert(self, readings: Sequence[SensorReading]) -> int:
        """Inserta en bloque. Lanza excepción si falla."""
        ...

    def query_window(self, device_id: str, since: datetime) -> List[SensorReading]:
        ...

    def latest(self, device_id: str) -> Optional[SensorReading]:
        ...

    def aggregate_stats(self, device_id: str, since: datetime) -> Optional[dict]:
        ...


class EventPublisher(Protocol):
    def publish(self, topic: str, event: dict) -> None:
        """Publica ``event`` en ``topic``. Fire-and-forget."""
        ...


class AlertRepository(Protocol):
    def insert(self, alert: Alert) -> None:
        ...

    def get(self, alert_id: str) -> Optional[Alert]:
        ...

    def find_open_since(
        self,
        device_id: str,
        trigger_type: AlertTriggerType,
        since: datetime,
    ) -> Optional[Alert]:
        """Alerta ACTIVE/ACKNOWLEDGED más reciente creada desde ``since``."""
        ...

    def update_status(self, alert: Alert) -> None:
        ...

    def delete_resolved_before(self, cutoff: datetime) -> int:
        ...

    def list_by_status(self, statuses: Sequence[AlertStatus], limit: int) -> List[Alert]:
        ...

    def list_for_device(self, device_id: str, limit: int) -> List[Alert]:
        ...
