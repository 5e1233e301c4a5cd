from __future__ import annotations

from typing import Optional
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .config import get_settings


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def build_engine(url: str) -> Engine:
    """Crea un engine SQLAlchemy para la URL indicada.

    SQLite en memoria necesita una única conexión compartida entre threads
    (los timers de buffers/colas corren en threads propios).
    """
    parsed = make_url(url)

    if parsed.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}, "future": True}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
    else:
        engine = create_engine(url, pool_pre_ping=True, pool_recycle=300, future=True)

    # Log básico (sin contraseña)
    logger.info(
        "[DB] Engine created backend=%s host=%s db=%s",
        parsed.get_backend_name(),
        parsed.host,
        parsed.database,
    )
    return engine


def get_engine() -> Engine:
    global _engine

    if _engine is not None:
        return _engine

    settings = get_settings()
    _engine = build_engine(settings.database_url)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Connection test OK")
    except Exception:
        logger.exception("[DB] Connection test FAILED")

    return _engine

