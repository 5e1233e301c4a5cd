"""Consultas de dispositivos: registro, salud, lecturas recientes y stats."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth import require_api_key
from ..bootstrap import HealthPipeline
from ..dependencies import get_pipeline
from ..schemas import (
    AlertOut,
    DeviceOut,
    HealthStateOut,
    SensorReadingOut,
    alert_out,
    device_out,
    health_state_out,
)

router = APIRouter(prefix="/devices", tags=["devices"], dependencies=[Depends(require_api_key)])

_RANGE_RE = re.compile(r"^(\d+)([mhd])$")
_UNIT_MINUTES = {"m": 1, "h": 60, "d": 1440}
DEFAULT_RANGE_MINUTES = 15


def parse_time_range(value: str | None) -> timedelta:
    """'15m' / '2h' / '1d' → timedelta. Si no se entiende, 15 minutos."""
    match = _RANGE_RE.match((value or "").strip())
    if not match:
        return timedelta(minutes=DEFAULT_RANGE_MINUTES)
    amount, unit = match.groups()
    return timedelta(minutes=int(amount) * _UNIT_MINUTES[unit])


def _require_device(pipeline: HealthPipeline, device_id: str):
    record = pipeline.devices.get(device_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Device not found")
    return record


@router.get("", response_model=List[str])
def list_devices(pipeline: HealthPipeline = Depends(get_pipeline)):
    return pipeline.devices.list_device_ids()


@router.get("/{device_id}", response_model=DeviceOut)
def get_device(device_id: str, pipeline: HealthPipeline = Depends(get_pipeline)):
    return device_out(_require_device(pipeline, device_id))


@router.get("/{device_id}/health", response_model=HealthStateOut)
def get_device_health(device_id: str, pipeline: HealthPipeline = Depends(get_pipeline)):
    state = pipeline.coordinator.get_health_state(device_id)
    if state is not None:
        return health_state_out(state)

    # Sin inferencia en este proceso: último estado persistido
    record = _require_device(pipeline, device_id)
    return HealthStateOut(
        device_id=record.device_id,
        health_score=record.health_score,
        failure_risk=record.failure_risk,
        status=record.health_status,
        reason=record.health_reason,
        computed_at=record.last_update,
    )


@router.get("/{device_id}/readings", response_model=List[SensorReadingOut])
def get_recent_readings(
    device_id: str,
    range_: str = Query("15m", alias="range"),
    limit: int = Query(100, ge=1, le=1000),
    pipeline: HealthPipeline = Depends(get_pipeline),
):
    since = pipeline.clock.now() - parse_time_range(range_)
    readings = pipeline.readings.query_window(device_id, since)
    if not readings:
        raise HTTPException(status_code=404, detail="No sensor data found")
    return [
        SensorReadingOut(
            device_id=r.device_id,
            temperature=r.temperature,
            vibration=r.vibration,
            pressure=r.pressure,
            timestamp=r.timestamp,
        )
        for r in readings[-limit:]
    ]


@router.get("/{device_id}/stats")
def get_reading_stats(
    device_id: str,
    range_: str = Query("15m", alias="range"),
    pipeline: HealthPipeline = Depends(get_pipeline),
):
    since = pipeline.clock.now() - parse_time_range(range_)
    stats = pipeline.readings.aggregate_stats(device_id, since)
    if stats is None:
        raise HTTPException(status_code=404, detail="No sensor data for statistics")
    return {"deviceId": device_id, "timeRange": range_, "data": stats}


@router.get("/{device_id}/alerts", response_model=List[AlertOut])
def get_device_alerts(
    device_id: str,
    limit: int = Query(50, ge=1, le=500),
    pipeline: HealthPipeline = Depends(get_pipeline),
):
    return [alert_out(a) for a in pipeline.alerts.list_for_device(device_id, limit=limit)]
