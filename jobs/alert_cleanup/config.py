"""Configuración del job de limpieza."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CleanupConfig:
    older_than_hours: float
    sleep_seconds: float
    once: bool
