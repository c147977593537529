# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/metalsched/logging/log.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "metalsched",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Initializes:
      - a per-run log file with the full DEBUG trace
      - console output at INFO (DEBUG when verbose)
      - returns run_id so observers can reuse it
    """
    run_id = str(uuid.uuid4())

    if base_dir is None:
        base_dir = Path.home() / ".metalsched" / "logs"
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    logger.debug("run_id=%s log_file=%s", run_id, log_path)

    return logger, run_id, log_path
