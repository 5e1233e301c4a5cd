"""Registro de dispositivo y umbrales de alerta."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AlertThresholds:
    """Umbrales por dispositivo. ``vibration`` en escala cruda (sin ×100)."""
    temperature: float = 85.0
    vibration: float = 0.8
    pressure: float = 40.0
    health_score_min: float = 60.0


DEFAULT_ALERT_THRESHOLDS = AlertThresholds()


@dataclass(frozen=True)
class DeviceRecord:
    device_id: str
    name: str
    status: str = "ACTIVE"
    location: str = "Unknown"
    thresholds: AlertThresholds = field(default_factory=AlertThresholds)
    health_score: int = 100
    failure_risk: str = "LOW"
    health_status: str = "STABLE"
    health_reason: Optional[str] = None
    last_update: Optional[datetime] = None
