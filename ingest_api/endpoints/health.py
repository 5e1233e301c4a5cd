"""Liveness, readiness y métricas Prometheus."""

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text

from ..bootstrap import HealthPipeline
from ..dependencies import get_pipeline

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(pipeline: HealthPipeline = Depends(get_pipeline)):
    """Readiness probe: verifica la conexión a la base."""
    try:
        with pipeline.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        raise HTTPException(status_code=503, detail="not ready")
    return {
        "status": "ready",
        "mqtt": pipeline.mqtt.is_connected if pipeline.mqtt is not None else None,
        "redis": pipeline.redis.ping() if pipeline.redis is not None else None,
    }


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
