"""Dependencias FastAPI: acceso al pipeline armado en el lifespan."""

from __future__ import annotations

from fastapi import HTTPException, Request

from .bootstrap import HealthPipeline
from .coordinator import IngestionCoordinator


def get_pipeline(request: Request) -> HealthPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="pipeline not ready")
    return pipeline


def get_coordinator(request: Request) -> IngestionCoordinator:
    return get_pipeline(request).coordinator
