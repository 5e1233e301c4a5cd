"""Endpoints de ingesta de lecturas (HTTP)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..auth import require_api_key
from ..coordinator import IngestAck, IngestionCoordinator
from ..dependencies import get_coordinator
from ..errors import ValidationError
from ..schemas import BulkIngestResult, BulkSensorReadingsIn, IngestResult, SensorReadingIn

router = APIRouter(tags=["ingest"], dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


def _result(ack: IngestAck) -> IngestResult:
    state = ack.inference.state if ack.inference is not None else None
    return IngestResult(
        device_id=ack.device_id,
        inference_triggered=ack.inference is not None,
        health_score=state.health_score if state is not None else None,
        flushed=ack.flush.count if ack.flush is not None and ack.flush.ok else 0,
        errors=[str(e) for e in ack.errors],
    )


@router.post("/ingest/readings", response_model=IngestResult, status_code=202)
def ingest_reading(
    payload: SensorReadingIn,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
):
    try:
        ack = coordinator.ingest(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _result(ack)


@router.post("/ingest/readings/bulk", response_model=BulkIngestResult, status_code=202)
def ingest_bulk(
    payload: BulkSensorReadingsIn,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
):
    """Ingesta de varias lecturas en orden. Las inválidas se reportan y se saltean."""
    results = []
    rejections = []
    for i, reading in enumerate(payload.readings):
        try:
            results.append(_result(coordinator.ingest(reading)))
        except ValidationError as e:
            rejections.append(f"readings[{i}]: {e}")

    if rejections:
        logger.warning("[INGEST] Bulk ingest rejected %d readings", len(rejections))

    return BulkIngestResult(
        accepted=len(results),
        rejected=len(rejections),
        results=results,
        rejections=rejections,
    )
