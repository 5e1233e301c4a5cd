"""Ensamblado del pipeline a partir de Settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from common.config import Settings
from common.db import build_engine
from common.scheduling import Clock, SystemClock, ThreadingTimerFactory, TimerFactory
from health_service.timeline_buffer import TimelineBufferManager

from .alerts import AlertEngine, ThresholdMonitor
from .batch_queue import BatchPersistenceQueue
from .coordinator import IngestionCoordinator
from .core.domain.contracts import EventPublisher
from .core.publishing import BackgroundEventPublisher, InMemoryEventPublisher
from .core.redis import RedisConnection, RedisEventPublisher
from .core.transport import MQTTClient
from .core.validation import ReadingValidator
from .infrastructure.persistence import (
    SqlAlertRepository,
    SqlDeviceRegistry,
    SqlReadingStore,
    ensure_schema,
)

logger = logging.getLogger(__name__)


@dataclass
class HealthPipeline:
    """Componentes vivos del pipeline y su apagado ordenado."""
    settings: Settings
    engine: Engine
    coordinator: IngestionCoordinator
    alerts: AlertEngine
    readings: SqlReadingStore
    devices: SqlDeviceRegistry
    publisher: EventPublisher
    clock: Clock
    background: Optional[BackgroundEventPublisher] = None
    redis: Optional[RedisConnection] = None
    monitor: Optional[ThresholdMonitor] = None
    mqtt: Optional[MQTTClient] = None

    def start(self) -> None:
        if self.background is not None:
            self.background.start()
        if self.monitor is not None:
            self.monitor.start()

    def shutdown(self) -> None:
        # Primero persistir lo pendiente; después cortar el fan-out.
        if self.monitor is not None:
            self.monitor.stop()
        try:
            self.coordinator.flush_all()
        except Exception:
            logger.exception("[INGEST] flush_all failed during shutdown")
        if self.mqtt is not None:
            self.mqtt.disconnect()
        if self.background is not None:
            self.background.stop()
        if self.redis is not None:
            self.redis.disconnect()
        logger.info("[INGEST] Pipeline shut down")


def _build_publisher(settings: Settings):
    if settings.redis_url:
        conn = RedisConnection(settings.redis_url)
        if conn.connect():
            return RedisEventPublisher(conn), conn
        logger.warning("[REDIS] Falling back to in-memory event publisher")
    return InMemoryEventPublisher(), None


def build_pipeline(
    settings: Settings,
    engine: Optional[Engine] = None,
    clock: Optional[Clock] = None,
    timers: Optional[TimerFactory] = None,
    publisher: Optional[EventPublisher] = None,
    background_publishing: bool = True,
) -> HealthPipeline:
    """Construye todos los componentes.

    ``engine``, ``clock``, ``timers`` y ``publisher`` se pueden inyectar
    (tests); si no, se crean desde ``settings``.
    """
    clock = clock or SystemClock()
    timers = timers or ThreadingTimerFactory(name_prefix="pipeline")
    engine = engine or build_engine(settings.database_url)
    ensure_schema(engine)

    redis_conn: Optional[RedisConnection] = None
    if publisher is None:
        publisher, redis_conn = _build_publisher(settings)

    background: Optional[BackgroundEventPublisher] = None
    if background_publishing:
        background = BackgroundEventPublisher(publisher)
        fanout: EventPublisher = background
    else:
        fanout = publisher

    pipeline_cfg = settings.pipeline
    alert_cfg = settings.alerts

    devices = SqlDeviceRegistry(engine, clock=clock)
    readings = SqlReadingStore(engine)
    alerts = AlertEngine(
        SqlAlertRepository(engine),
        fanout,
        clock,
        dedup_window_seconds=alert_cfg.dedup_window_seconds,
        retention_hours=alert_cfg.retention_hours,
        vibration_scale=pipeline_cfg.vibration_scale,
    )

    timeline = TimelineBufferManager(
        clock,
        timers,
        window_size=pipeline_cfg.window_size,
        timeout_seconds=pipeline_cfg.timeline_timeout_seconds,
        vibration_scale=pipeline_cfg.vibration_scale,
    )
    batch_queue = BatchPersistenceQueue(
        readings,
        timers,
        batch_size=pipeline_cfg.batch_size,
        timeout_seconds=pipeline_cfg.batch_timeout_seconds,
        on_flushed=lambda device_id, _count: devices.touch(device_id),
    )

    coordinator = IngestionCoordinator(
        registry=devices,
        timeline=timeline,
        batch_queue=batch_queue,
        alerts=alerts,
        publisher=fanout,
        validator=ReadingValidator(clock),
        vibration_scale=pipeline_cfg.vibration_scale,
    )

    monitor: Optional[ThresholdMonitor] = None
    if alert_cfg.threshold_monitor_interval_seconds > 0:
        monitor = ThresholdMonitor(
            alerts,
            devices,
            readings,
            health_lookup=timeline.get_health_state,
            interval_seconds=alert_cfg.threshold_monitor_interval_seconds,
        )

    logger.info(
        "[INGEST] Pipeline built window=%d timeline_timeout=%.0fs batch=%d batch_timeout=%.0fs",
        pipeline_cfg.window_size,
        pipeline_cfg.timeline_timeout_seconds,
        pipeline_cfg.batch_size,
        pipeline_cfg.batch_timeout_seconds,
    )

    return HealthPipeline(
        settings=settings,
        engine=engine,
        coordinator=coordinator,
        alerts=alerts,
        readings=readings,
        devices=devices,
        publisher=fanout,
        clock=clock,
        background=background,
        redis=redis_conn,
        monitor=monitor,
    )
