"""Process-wide logging with a rotating file handler."""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from igire.config import Settings

_CONFIGURED = False


def init_logging(settings: Settings, *, to_file: bool = True) -> logging.Logger:
    global _CONFIGURED

    logger = logging.getLogger("igire")
    if _CONFIGURED:
        return logger

    level = getattr(logging, settings.log_level, logging.INFO)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(module)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if to_file:
        os.makedirs(settings.log_dir, exist_ok=True)
        log_path = os.path.join(settings.log_dir, "igire.log")
        file_handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(level)
    logger.propagate = False
    _CONFIGURED = True

    logger.info("Logging initialized (level=%s)", settings.log_level)
    return logger
