"""Fan-out de eventos vía Redis pub/sub.

Canales: ``device:<id>`` (sensor:update, device:health) y ``alerts``
(alert:new, alert:acknowledged, alert:resolved). El payload es el evento
serializado con orjson; el nombre del evento viaja en la clave ``event``.
"""

from __future__ import annotations

import logging

import orjson
import redis

from .connection import RedisConnection

logger = logging.getLogger(__name__)


class RedisEventPublisher:
    """Publica eventos en canales Redis. Nunca lanza: fire-and-forget."""

    def __init__(self, connection: RedisConnection):
        self._conn = connection

    def publish(self, topic: str, event: dict) -> None:
        if not self._conn.is_connected:
            logger.debug("[REDIS] Not connected, dropping event topic=%s", topic)
            return

        try:
            receivers = self._conn.client.publish(topic, orjson.dumps(event))
            logger.debug(
                "[REDIS] Published topic=%s event=%s receivers=%s",
                topic,
                event.get("event"),
                receivers,
            )
        except redis.RedisError as e:
            logger.warning("[REDIS] Publish failed topic=%s: %s", topic, e)
