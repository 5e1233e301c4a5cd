from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en la raíz del repo, si existe.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class PipelineSettings:
    """Parámetros temporales del pipeline de ingesta/inferencia."""

    window_size: int = 10
    timeline_timeout_seconds: float = 180.0
    batch_size: int = 10
    batch_timeout_seconds: float = 30.0
    vibration_scale: float = 100.0

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            window_size=int(os.getenv("TIMELINE_WINDOW_SIZE", "10")),
            timeline_timeout_seconds=float(os.getenv("TIMELINE_TIMEOUT_SECONDS", "180")),
            batch_size=int(os.getenv("BATCH_SIZE", "10")),
            batch_timeout_seconds=float(os.getenv("BATCH_TIMEOUT_SECONDS", "30")),
            vibration_scale=float(os.getenv("VIBRATION_SCALE", "100")),
        )


@dataclass(frozen=True)
class AlertSettings:
    """Parámetros del motor de alertas."""

    dedup_window_seconds: float = 60.0
    retention_hours: float = 24.0
    # 0 = monitor de umbrales deshabilitado
    threshold_monitor_interval_seconds: float = 0.0

    @classmethod
    def from_env(cls) -> "AlertSettings":
        return cls(
            dedup_window_seconds=float(os.getenv("ALERT_DEDUP_WINDOW_SECONDS", "60")),
            retention_hours=float(os.getenv("ALERT_RETENTION_HOURS", "24")),
            threshold_monitor_interval_seconds=float(
                os.getenv("THRESHOLD_MONITOR_INTERVAL_SECONDS", "0")
            ),
        )


@dataclass(frozen=True)
class MQTTSettings:
    host: Optional[str] = None
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    topic: str = "iot/sensors/#"

    @property
    def enabled(self) -> bool:
        return self.host is not None

    @classmethod
    def from_env(cls) -> "MQTTSettings":
        return cls(
            host=_optional("MQTT_BROKER_HOST"),
            port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
            username=_optional("MQTT_USERNAME"),
            password=_optional("MQTT_PASSWORD"),
            topic=os.getenv("MQTT_TOPIC", "iot/sensors/#"),
        )


@dataclass(frozen=True)
class Settings:
    database_url: str
    redis_url: Optional[str]
    api_key: Optional[str]

    pipeline: PipelineSettings
    alerts: AlertSettings
    mqtt: MQTTSettings


def get_settings() -> Settings:
    # Carga el env file (si existe) sin pisar variables reales del entorno.
    env_file = os.getenv("IOT_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    database_url = os.getenv("DATABASE_URL", "sqlite:///./iot_health.db")

    # Sin REDIS_URL el fan-out queda en memoria (modo dev).
    redis_url = _optional("REDIS_URL")

    return Settings(
        database_url=database_url,
        redis_url=redis_url,
        api_key=_optional("INGEST_API_KEY"),
        pipeline=PipelineSettings.from_env(),
        alerts=AlertSettings.from_env(),
        mqtt=MQTTSettings.from_env(),
    )
