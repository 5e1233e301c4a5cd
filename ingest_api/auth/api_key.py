"""Autenticación por API Key (header ``X-API-Key``).

Si ``INGEST_API_KEY`` no está configurado se permite el acceso (modo dev).
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Header, HTTPException, Request

logger = logging.getLogger(__name__)


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    pipeline = getattr(request.app.state, "pipeline", None)
    expected = pipeline.settings.api_key if pipeline is not None else None

    if not expected:
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key required")

    if not hmac.compare_digest(x_api_key, expected):
        logger.warning("[AUTH] Invalid API key attempt from request")
        raise HTTPException(status_code=401, detail="Invalid API key")
