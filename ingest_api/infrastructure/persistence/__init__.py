"""Persistencia SQLAlchemy: dispositivos, lecturas y alertas."""

from .alert_repository import SqlAlertRepository
from .device_repository import SqlDeviceRegistry
from .reading_store import SqlReadingStore
from .schema import ensure_schema

__all__ = [
    "SqlAlertRepository",
    "SqlDeviceRegistry",
    "SqlReadingStore",
    "ensure_schema",
]
