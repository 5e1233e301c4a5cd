"""Registro de estado por dispositivo.

Reemplaza los mapas globales deviceId -> estado por un objeto explícito:

- El mapa se protege con un lock grueso (operaciones O(1)).
- Cada slot trae su propio ``RLock`` para serializar append/drain/timers
  del mismo dispositivo sin bloquear a los demás.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, List, Optional, TypeVar

S = TypeVar("S")


class DeviceSlotRegistry(Generic[S]):
    """Mapa thread-safe device_id -> slot, con creación perezosa."""

    def __init__(self, factory: Callable[[], S]) -> None:
        self._factory = factory
        self._slots: Dict[str, S] = {}
        self._lock = threading.Lock()

    def get_or_create(self, device_id: str) -> S:
        with self._lock:
            slot = self._slots.get(device_id)
            if slot is None:
                slot = self._factory()
                self._slots[device_id] = slot
            return slot

    def get(self, device_id: str) -> Optional[S]:
        with self._lock:
            return self._slots.get(device_id)

    def device_ids(self) -> List[str]:
        with self._lock:
            return list(self._slots.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)
