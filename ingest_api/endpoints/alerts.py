"""Gestión de alertas: listado, acknowledge, resolve y limpieza."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from ..auth import require_api_key
from ..bootstrap import HealthPipeline
from ..dependencies import get_pipeline
from ..errors import NotFoundError
from ..schemas import AcknowledgeIn, AlertOut, CleanupResult, alert_out

router = APIRouter(prefix="/alerts", tags=["alerts"], dependencies=[Depends(require_api_key)])


@router.get("", response_model=List[AlertOut])
def list_active_alerts(
    limit: int = Query(50, ge=1, le=500),
    pipeline: HealthPipeline = Depends(get_pipeline),
):
    return [alert_out(a) for a in pipeline.alerts.list_active(limit=limit)]


@router.get("/{alert_id}", response_model=AlertOut)
def get_alert(alert_id: str, pipeline: HealthPipeline = Depends(get_pipeline)):
    try:
        return alert_out(pipeline.alerts.get(alert_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{alert_id}/acknowledge", response_model=AlertOut)
def acknowledge_alert(
    alert_id: str,
    payload: Optional[AcknowledgeIn] = Body(default=None),
    pipeline: HealthPipeline = Depends(get_pipeline),
):
    actor = payload.acknowledged_by if payload is not None else None
    try:
        return alert_out(pipeline.coordinator.acknowledge_alert(alert_id, actor))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{alert_id}/resolve", response_model=AlertOut)
def resolve_alert(alert_id: str, pipeline: HealthPipeline = Depends(get_pipeline)):
    try:
        return alert_out(pipeline.coordinator.resolve_alert(alert_id))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/resolved", response_model=CleanupResult)
def cleanup_resolved(
    older_than_hours: float = Query(24.0, ge=0),
    pipeline: HealthPipeline = Depends(get_pipeline),
):
    return CleanupResult(deleted=pipeline.alerts.cleanup(older_than_hours))
