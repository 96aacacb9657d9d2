from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "db_backup"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def log_filename(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d") + ".log"


def configure_logging(
    enable_logging: bool,
    log_dir: Union[str, Path] = ".",
    level: str = "INFO",
    now: Optional[datetime] = None,
) -> logging.Logger:
    """Build the run logger.

    Appends to ``<log_dir>/YYYYMMDD.log`` when ``enable_logging`` is set,
    otherwise writes to stdout. Handlers from a previous call are replaced.
    Raises ``OSError`` if the log file cannot be opened.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_logging:
        log_file = Path(log_dir) / log_filename(now)
        handler: logging.Handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)

    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return logger
