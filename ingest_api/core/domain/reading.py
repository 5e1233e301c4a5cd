"""Modelo de dominio para lecturas de sensores."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone

DEFAULT_VIBRATION_SCALE = 100.0


@dataclass(frozen=True)
class SensorReading:
    """Lectura de un dispositivo - modelo canónico de dominio.

    Este es el contrato único que fluye por todo el pipeline:
    MQTT/HTTP → Validación → {Batch Queue, Timeline Buffer} → Scoring

    ``vibration`` viaja en escala cruda (p.ej. 0.42) hasta que el coordinador
    la normaliza a 0–100. ``normalized`` evita escalarla dos veces.
    """
    device_id: str
    temperature: float
    vibration: float
    pressure: float
    timestamp: datetime
    normalized: bool = False

    @property
    def epoch(self) -> float:
        return self.timestamp.timestamp()

    def snapshot(self) -> dict:
        """Valores de los tres sensores (para alertas y eventos)."""
        return {
            "temperature": self.temperature,
            "vibration": self.vibration,
            "pressure": self.pressure,
        }

    def to_row(self) -> dict:
        """Convierte a parámetros para el INSERT de sensor_readings."""
        return {
            "device_id": self.device_id,
            "temperature": float(self.temperature),
            "vibration": float(self.vibration),
            "pressure": float(self.pressure),
            "ts": self.epoch,
        }

    @classmethod
    def from_row(cls, row) -> "SensorReading":
        return cls(
            device_id=str(row.device_id),
            temperature=float(row.temperature),
            vibration=float(row.vibration),
            pressure=float(row.pressure),
            timestamp=datetime.fromtimestamp(float(row.ts), tz=timezone.utc),
            normalized=True,
        )


def normalize_reading(
    reading: SensorReading,
    scale: float = DEFAULT_VIBRATION_SCALE,
) -> SensorReading:
    """Escala la vibración a 0–100. Idempotente: solo escala una vez."""
    if reading.normalized:
        return reading
    return replace(reading, vibration=reading.vibration * scale, normalized=True)
