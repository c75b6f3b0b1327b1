"""
Evolver — Logging Setup

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

Loguru sinks: colored console always, rotating file when a log directory
is given.
"""

import os
import sys
from datetime import datetime, timezone
from typing import Optional

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<yellow>{line}</yellow> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logger(level: str = "INFO", log_dir: Optional[str] = None,
                 rotation: str = "20 MB", retention: str = "14 days") -> Optional[str]:
    """Replace loguru's default handler. Returns the log file path, if any."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=CONSOLE_FORMAT,
        colorize=sys.stderr.isatty(),
    )

    if log_dir is None:
        return None

    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"evolver_{timestamp}.log")
    logger.add(
        log_file,
        level=level,
        format=FILE_FORMAT,
        rotation=rotation,
        retention=retention,
        encoding="utf-8",
    )
    logger.info(f"Logging to {log_file}")
    return log_file
