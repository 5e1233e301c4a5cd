"""Publicadores de eventos sin dependencias externas.

- InMemoryEventPublisher: guarda los eventos y los entrega a handlers
  suscritos en el mismo proceso (modo dev y tests).
- BackgroundEventPublisher: desacopla el fan-out del camino de ingesta.
  El thread que publica solo encola; un worker único drena la cola y llama
  al publicador real. Con la cola llena el evento se descarta.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Dict, List, Optional, Tuple

from .domain.contracts import EventPublisher
from ..metrics import PUBLISH_FAILURES, PUBLISH_QUEUE_SIZE

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, dict], None]


class InMemoryEventPublisher:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[Tuple[str, dict]] = []
        self._handlers: Dict[str, List[EventHandler]] = {}

    def publish(self, topic: str, event: dict) -> None:
        with self._lock:
            self._events.append((topic, event))
            handlers = list(self._handlers.get(topic, ())) + list(self._handlers.get("*", ()))

        for handler in handlers:
            try:
                handler(topic, event)
            except Exception:
                PUBLISH_FAILURES.inc()
                logger.exception("[EVENTS] Handler failed topic=%s", topic)

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        """Suscribe ``handler`` a ``topic`` (``"*"`` recibe todos)."""
        with self._lock:
            self._handlers.setdefault(topic, []).append(handler)

    def events(self, topic: Optional[str] = None, name: Optional[str] = None) -> List[dict]:
        with self._lock:
            return [
                event
                for t, event in self._events
                if (topic is None or t == topic) and (name is None or event.get("event") == name)
            ]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class BackgroundEventPublisher:
    """Envuelve otro publicador y publica desde un worker thread."""

    _STOP = object()

    def __init__(self, delegate: EventPublisher, maxsize: int = 10_000) -> None:
        self._delegate = delegate
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._worker: Optional[threading.Thread] = None
        self._dropped = 0

    @property
    def dropped(self) -> int:
        return self._dropped

    def start(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run, name="event-publisher", daemon=True)
        self._worker.start()
        logger.info("[EVENTS] Background publisher started")

    def publish(self, topic: str, event: dict) -> None:
        try:
            # No bloquea: la ingesta no espera al fan-out.
            self._queue.put((topic, event), block=False)
        except queue.Full:
            self._dropped += 1
            PUBLISH_FAILURES.inc()
            logger.warning("[EVENTS] Queue full, dropping event topic=%s", topic)
            return
        PUBLISH_QUEUE_SIZE.set(self._queue.qsize())

    def stop(self, timeout: float = 5.0) -> None:
        """Drena los eventos pendientes y detiene el worker."""
        if self._worker is None:
            return
        self._queue.put(self._STOP)
        self._worker.join(timeout=timeout)
        self._worker = None
        logger.info("[EVENTS] Background publisher stopped dropped=%d", self._dropped)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                topic, event = item
                try:
                    self._delegate.publish(topic, event)
                except Exception:
                    PUBLISH_FAILURES.inc()
                    logger.exception("[EVENTS] Publish failed topic=%s", topic)
            finally:
                self._queue.task_done()
                PUBLISH_QUEUE_SIZE.set(self._queue.qsize())
