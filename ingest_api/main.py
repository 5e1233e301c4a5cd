from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI

from common.config import Settings, get_settings

from .bootstrap import HealthPipeline, build_pipeline
from .core.transport import MessageHandler, MQTTClient
from .endpoints import alerts_router, devices_router, health_router, ingest_router

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[Settings], HealthPipeline]


def _start_mqtt(settings: Settings, pipeline: HealthPipeline) -> Optional[MQTTClient]:
    if not settings.mqtt.enabled:
        logger.info("[MQTT] MQTT_BROKER_HOST not set, MQTT ingestion disabled")
        return None

    client = MQTTClient(settings.mqtt)
    client.set_message_handler(MessageHandler(pipeline.coordinator).handle)
    client.connect()
    # Se guarda aunque no haya conectado: paho reintenta en background
    return client


def create_app(
    settings: Optional[Settings] = None,
    pipeline_factory: PipelineFactory = build_pipeline,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = settings or get_settings()
        pipeline = pipeline_factory(cfg)
        app.state.pipeline = pipeline
        pipeline.start()
        pipeline.mqtt = _start_mqtt(cfg, pipeline)
        logger.info("[INGEST] Service started")
        try:
            yield
        finally:
            pipeline.shutdown()
            app.state.pipeline = None

    app = FastAPI(title="Equipment Health Ingest Service", version="1.0.0", lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(ingest_router)
    app.include_router(devices_router)
    app.include_router(alerts_router)
    return app


app = create_app()
