from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SensorReadingIn(_CamelModel):
    device_id: str = Field(..., alias="deviceId", min_length=1)
    temperature: float
    vibration: float
    pressure: float
    timestamp: Optional[datetime] = None


class BulkSensorReadingsIn(BaseModel):
    readings: List[SensorReadingIn] = Field(default_factory=list)


class IngestResult(_CamelModel):
    device_id: str = Field(..., alias="deviceId")
    accepted: bool = True
    inference_triggered: bool = Field(False, alias="inferenceTriggered")
    health_score: Optional[int] = Field(None, alias="healthScore")
    flushed: int = 0
    errors: List[str] = Field(default_factory=list)


class BulkIngestResult(BaseModel):
    accepted: int
    rejected: int
    results: List[IngestResult] = Field(default_factory=list)
    rejections: List[str] = Field(default_factory=list)


class HealthStateOut(_CamelModel):
    device_id: str = Field(..., alias="deviceId")
    health_score: int = Field(..., alias="healthScore")
    failure_risk: str = Field(..., alias="failureRisk")
    status: str
    reason: Optional[str] = None
    component_scores: Optional[Dict[str, float]] = Field(None, alias="componentScores")
    computed_at: Optional[datetime] = Field(None, alias="computedAt")


class AlertThresholdsOut(_CamelModel):
    temperature: float
    vibration: float
    pressure: float
    health_score_min: float = Field(..., alias="healthScoreMin")


class DeviceOut(_CamelModel):
    device_id: str = Field(..., alias="deviceId")
    name: str
    status: str
    location: str
    health_score: int = Field(..., alias="healthScore")
    failure_risk: str = Field(..., alias="failureRisk")
    last_update: Optional[datetime] = Field(None, alias="lastUpdate")
    alert_thresholds: AlertThresholdsOut = Field(..., alias="alertThresholds")


class SensorReadingOut(_CamelModel):
    device_id: str = Field(..., alias="deviceId")
    temperature: float
    vibration: float
    pressure: float
    timestamp: datetime


class SensorSnapshotOut(BaseModel):
    temperature: Optional[float] = None
    vibration: Optional[float] = None
    pressure: Optional[float] = None


class AlertOut(_CamelModel):
    id: str
    device_id: str = Field(..., alias="deviceId")
    severity: str
    trigger_type: str = Field(..., alias="triggerType")
    message: str
    reason: Optional[str] = None
    status: str
    sensor_readings: SensorSnapshotOut = Field(..., alias="sensorReadings")
    created_at: datetime = Field(..., alias="createdAt")
    acknowledged_by: Optional[str] = Field(None, alias="acknowledgedBy")
    acknowledged_at: Optional[datetime] = Field(None, alias="acknowledgedAt")
    resolved_at: Optional[datetime] = Field(None, alias="resolvedAt")


class AcknowledgeIn(_CamelModel):
    acknowledged_by: Optional[str] = Field(None, alias="acknowledgedBy")


class CleanupResult(BaseModel):
    deleted: int


class FlushResultOut(_CamelModel):
    device_id: str = Field(..., alias="deviceId")
    count: int
    ok: bool
    error: Optional[str] = None


def health_state_out(state) -> HealthStateOut:
    return HealthStateOut(
        device_id=state.device_id,
        health_score=state.health_score,
        failure_risk=state.failure_risk.value,
        status=state.status.value,
        reason=state.reason,
        component_scores=state.component_scores.to_dict(),
        computed_at=state.computed_at,
    )


def device_out(record) -> DeviceOut:
    t = record.thresholds
    return DeviceOut(
        device_id=record.device_id,
        name=record.name,
        status=record.status,
        location=record.location,
        health_score=record.health_score,
        failure_risk=record.failure_risk,
        last_update=record.last_update,
        alert_thresholds=AlertThresholdsOut(
            temperature=t.temperature,
            vibration=t.vibration,
            pressure=t.pressure,
            health_score_min=t.health_score_min,
        ),
    )


def alert_out(alert) -> AlertOut:
    return AlertOut(
        id=alert.id,
        device_id=alert.device_id,
        severity=alert.severity.value,
        trigger_type=alert.trigger_type.value,
        message=alert.message,
        reason=alert.reason,
        status=alert.status.value,
        sensor_readings=SensorSnapshotOut(**alert.sensor_snapshot.to_dict()),
        created_at=alert.created_at,
        acknowledged_by=alert.acknowledged_by,
        acknowledged_at=alert.acknowledged_at,
        resolved_at=alert.resolved_at,
    )
