"""Entrada CLI del job de limpieza de alertas RESOLVED."""

from __future__ import annotations

import argparse
import logging
import time
from typing import List, Optional

from common.config import get_settings

from .config import CleanupConfig
from .runner import run_once

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[List[str]]) -> CleanupConfig:
    retention = get_settings().alerts.retention_hours

    p = argparse.ArgumentParser(description="Borra alertas RESOLVED más viejas que la retención")
    p.add_argument(
        "--older-than-hours",
        type=float,
        default=retention,
        help=f"retención en horas (default ALERT_RETENTION_HOURS={retention:g})",
    )
    p.add_argument("--sleep-seconds", type=float, default=3600.0, help="pausa entre pasadas")
    p.add_argument("--once", action="store_true", help="una sola pasada y salir")
    args = p.parse_args(argv)

    return CleanupConfig(
        older_than_hours=args.older_than_hours,
        sleep_seconds=args.sleep_seconds,
        once=args.once,
    )


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    cfg = _parse_args(argv)

    logger.info(
        "[CLEANUP] Started older_than=%.1fh sleep=%.0fs once=%s",
        cfg.older_than_hours,
        cfg.sleep_seconds,
        cfg.once,
    )

    if cfg.once:
        run_once(cfg)
        return

    while True:
        try:
            run_once(cfg)
        except Exception:
            # Un fallo de la base no detiene el job: se reintenta en la próxima pasada
            logger.exception("[CLEANUP] Pass failed")
        time.sleep(cfg.sleep_seconds)


if __name__ == "__main__":
    main()
