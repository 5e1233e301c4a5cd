"""Una iteración de limpieza contra la base configurada."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from common.db import get_engine
from common.scheduling import Clock, SystemClock
from ingest_api.alerts import AlertEngine
from ingest_api.core.publishing import InMemoryEventPublisher
from ingest_api.infrastructure.persistence import SqlAlertRepository, ensure_schema

from .config import CleanupConfig

logger = logging.getLogger(__name__)


def run_once(
    cfg: CleanupConfig,
    engine: Optional[Engine] = None,
    clock: Optional[Clock] = None,
) -> int:
    engine = engine or get_engine()
    ensure_schema(engine)

    # El job no publica eventos: solo borra alertas RESOLVED
    alerts = AlertEngine(SqlAlertRepository(engine), InMemoryEventPublisher(), clock or SystemClock())
    deleted = alerts.cleanup(older_than_hours=cfg.older_than_hours)
    logger.info("Cleanup completed: deleted=%d older_than=%.1fh", deleted, cfg.older_than_hours)
    return deleted
