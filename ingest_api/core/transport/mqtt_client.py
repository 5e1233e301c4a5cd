"""Suscriptor MQTT de telemetría de equipos."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from common.config import MQTTSettings

logger = logging.getLogger(__name__)

# (topic, payload crudo)
MessageCallback = Callable[[str, bytes], None]

KEEPALIVE_SECONDS = 60
SUBSCRIBE_QOS = 1


class MQTTClient:
    """Se suscribe al topic de sensores y entrega cada mensaje al handler.

    El loop de red de paho corre en su propio thread y reconecta solo
    (con backoff entre 1 y 30 s). En cada reconexión se vuelve a suscribir.
    """

    def __init__(self, settings: MQTTSettings, client_id_prefix: str = "health-ingest"):
        if not settings.enabled:
            raise ValueError("MQTT broker host is not configured")

        self._settings = settings
        self.client_id = f"{client_id_prefix}-{uuid.uuid4().hex[:8]}"

        self._client: Optional[mqtt.Client] = None
        self._handler: Optional[MessageCallback] = None
        self._connected = threading.Event()

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def set_message_handler(self, handler: MessageCallback) -> None:
        self._handler = handler

    def connect(self, wait_seconds: float = 5.0) -> bool:
        """Arranca el loop de red y espera el CONNACK hasta ``wait_seconds``.

        Retorna False si el broker no respondió a tiempo; el loop queda
        corriendo y paho sigue reintentando en background.
        """
        cfg = self._settings
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        if cfg.username:
            client.username_pw_set(cfg.username, cfg.password)
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client

        logger.info("[MQTT] Connecting to %s:%d as %s", cfg.host, cfg.port, self.client_id)
        try:
            client.connect_async(cfg.host, cfg.port, keepalive=KEEPALIVE_SECONDS)
            client.loop_start()
        except (OSError, ValueError) as e:
            logger.error("[MQTT] Could not start network loop: %s", e)
            return False

        if not self._connected.wait(wait_seconds):
            logger.warning("[MQTT] No CONNACK after %.1fs, retrying in background", wait_seconds)
            return False
        return True

    def disconnect(self) -> None:
        client, self._client = self._client, None
        self._connected.clear()
        if client is None:
            return
        client.disconnect()
        client.loop_stop()
        logger.info("[MQTT] Disconnected from %s", self._settings.host)

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error("[MQTT] Broker refused connection: %s", reason_code)
            return
        client.subscribe(self._settings.topic, qos=SUBSCRIBE_QOS)
        self._connected.set()
        logger.info("[MQTT] Subscribed to %s", self._settings.topic)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        was_connected = self._connected.is_set()
        self._connected.clear()
        if was_connected and self._client is not None:
            logger.warning("[MQTT] Connection lost (%s), reconnecting", reason_code)

    def _on_message(self, client, userdata, msg):
        handler = self._handler
        if handler is None:
            return
        handler(msg.topic, msg.payload)
