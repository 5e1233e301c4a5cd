"""Puente MQTT → coordinador de ingesta.

Cada mensaje es un JSON con la lectura. Si el payload no trae ``deviceId``
se toma el último segmento del topic (``iot/sensors/<deviceId>``).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Optional

import orjson

from ...errors import ValidationError

logger = logging.getLogger(__name__)

LOG_EVERY = 100


@dataclass
class IngestCounters:
    received: int = 0
    accepted: int = 0
    rejected: int = 0
    degraded: int = 0
    failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class MessageHandler:
    """Nunca lanza: corre en el thread de red de paho."""

    def __init__(self, coordinator):
        self._coordinator = coordinator
        self._counters = IngestCounters()
        self._lock = threading.Lock()

    @property
    def stats(self) -> IngestCounters:
        return self._counters

    def handle(self, topic: str, payload: bytes) -> None:
        self._count("received")

        reading = self._decode(topic, payload)
        if reading is None:
            self._count("rejected")
            return

        try:
            ack = self._coordinator.ingest(reading)
        except ValidationError as e:
            self._count("rejected")
            logger.warning("[MQTT] Reading rejected on %s: %s", topic, e)
            return
        except Exception:
            self._count("failed")
            logger.exception("[MQTT] Ingest failed on %s", topic)
            return

        # Aceptada pero con fallos de efectos laterales (persistencia, alertas)
        self._count("accepted" if ack.ok else "degraded")

    def _decode(self, topic: str, payload: bytes) -> Optional[dict]:
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as e:
            logger.warning("[MQTT] Malformed JSON on %s: %s", topic, e)
            return None
        if not isinstance(data, dict):
            logger.warning("[MQTT] Expected a JSON object on %s", topic)
            return None

        if "deviceId" not in data and "device_id" not in data:
            device_id = topic.rstrip("/").rsplit("/", 1)[-1]
            if device_id and device_id not in ("#", "+"):
                data["deviceId"] = device_id
        return data

    def _count(self, name: str) -> None:
        with self._lock:
            setattr(self._counters, name, getattr(self._counters, name) + 1)
            received = self._counters.received
        if name == "received" and received % LOG_EVERY == 0:
            logger.info("[MQTT] Counters: %s", self._counters.to_dict())
