"""Módulo de endpoints HTTP."""

from .alerts import router as alerts_router
from .devices import router as devices_router
from .health import router as health_router
from .ingest import router as ingest_router

__all__ = [
    "alerts_router",
    "devices_router",
    "health_router",
    "ingest_router",
]
