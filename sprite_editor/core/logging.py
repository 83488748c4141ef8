from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import APP_NAME, APP_VERSION, LOG_DIR


def setup_logging(level: int = logging.INFO, log_dir: Optional[Path] = None) -> logging.Logger:
    logger = logging.getLogger()  # root
    logger.setLevel(level)

    # Clear duplicate handlers if reinit
    for h in list(logger.handlers):
        logger.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    directory = log_dir or LOG_DIR
    log_file = directory / f"{APP_NAME.lower()}.log"
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
        )
        fh.setFormatter(fmt)
        fh.setLevel(level)
        logger.addHandler(fh)
    except OSError:
        log_file = None

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch.setLevel(level)
    logger.addHandler(ch)

    if log_file is None:
        logger.warning("File logging unavailable, logging to console only")
    logger.info("%s %s logging initialised (%s)", APP_NAME, APP_VERSION, log_file)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return a child logger of the root configured by setup_logging().
    Usage: from sprite_editor.core.logging import get_logger; log = get_logger(__name__)
    """
    return logging.getLogger(name or APP_NAME)
