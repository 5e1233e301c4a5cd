"""Validador de lecturas crudas (MQTT/HTTP) a SensorReading."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from common.scheduling import Clock, SystemClock

from ...errors import ValidationError
from ..domain.reading import SensorReading

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("temperature", "vibration", "pressure")

# Nombres aceptados para el id del dispositivo (camelCase del wire y snake_case)
_DEVICE_ID_KEYS = ("deviceId", "device_id")


class ReadingValidator:
    """Valida un payload crudo y lo convierte al modelo de dominio.

    Responsabilidades:
    - Exigir deviceId y los tres campos numéricos
    - Rechazar valores no finitos o no numéricos
    - Resolver el timestamp (ISO-8601, epoch o datetime; default: ahora)

    La lectura resultante NO está normalizada (vibración en escala cruda).
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or SystemClock()

    def validate(self, payload: Any) -> SensorReading:
        if isinstance(payload, SensorReading):
            self._require_device_id(payload.device_id)
            for name in NUMERIC_FIELDS:
                self._require_number(name, getattr(payload, name))
            return payload

        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(by_alias=True)

        if not isinstance(payload, Mapping):
            raise ValidationError("reading must be an object")

        device_id = self._require_device_id(
            next((payload.get(k) for k in _DEVICE_ID_KEYS if payload.get(k) is not None), None)
        )
        values = {name: self._require_number(name, payload.get(name)) for name in NUMERIC_FIELDS}

        return SensorReading(
            device_id=device_id,
            timestamp=self._parse_timestamp(payload.get("timestamp")),
            **values,
        )

    @staticmethod
    def _require_device_id(value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("deviceId is required", field="deviceId")
        return value.strip()

    @staticmethod
    def _require_number(name: str, value: Any) -> float:
        if value is None:
            raise ValidationError(f"{name} is required", field=name)
        # bool es subclase de int; no es una lectura válida
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{name} must be a number", field=name)
        try:
            number = float(value)
        except OverflowError as e:
            raise ValidationError(f"{name} is out of range", field=name) from e
        if not math.isfinite(number):
            raise ValidationError(f"{name} must be finite", field=name)
        return number

    def _parse_timestamp(self, value: Any) -> datetime:
        if value is None or value == "":
            return self._clock.now()

        if isinstance(value, datetime):
            ts = value
        elif isinstance(value, bool):
            raise ValidationError("timestamp must be ISO-8601 or epoch seconds", field="timestamp")
        elif isinstance(value, (int, float)):
            # Epoch en ms si el número es demasiado grande para segundos
            seconds = value / 1000.0 if value > 1e11 else float(value)
            try:
                ts = datetime.fromtimestamp(seconds, tz=timezone.utc)
            except (OverflowError, OSError, ValueError) as e:
                raise ValidationError(f"invalid timestamp: {e}", field="timestamp") from e
        elif isinstance(value, str):
            try:
                ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError as e:
                raise ValidationError(f"invalid timestamp: {value!r}", field="timestamp") from e
        else:
            raise ValidationError("timestamp must be ISO-8601 or epoch seconds", field="timestamp")

        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts
