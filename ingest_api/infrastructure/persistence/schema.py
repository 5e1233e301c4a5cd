"""Creación del esquema desde los archivos de migración SQL."""

from __future__ import annotations

import logging
import pathlib

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = pathlib.Path(__file__).parent / "migrations"


def _statements(sql_content: str) -> list[str]:
    # Quita comentarios de línea y separa por ';'
    lines = [line for line in sql_content.splitlines() if not line.strip().startswith("--")]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def ensure_schema(engine: Engine) -> None:
    """Aplica todas las migraciones en orden. Idempotente (IF NOT EXISTS)."""
    sql_files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not sql_files:
        logger.warning("[DB] No migration files found in %s - skipping schema creation", MIGRATIONS_DIR)
        return

    try:
        with engine.begin() as conn:
            for sql_file in sql_files:
                for statement in _statements(sql_file.read_text(encoding="utf-8")):
                    conn.execute(text(statement))
                logger.info("[DB] Migration applied: %s", sql_file.name)
    except Exception:
        logger.exception("[DB] Schema creation failed")
        raise
