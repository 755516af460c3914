"""Logging configuration for the engine and CLI."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from imagevault.config.models import LoggingSettings

LOG_FILENAME = "imagevault.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_HANDLER_MARKER = "_imagevault_handler"


def configure_logging(settings: LoggingSettings, log_dir: Optional[Path] = None) -> logging.Logger:
    """Apply logging settings to the ``imagevault`` logger hierarchy.

    Args:
        settings: Level and rotation settings from the configuration.
        log_dir: Directory for the rotating log file; console-only when omitted.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger("imagevault")
    level = logging.getLevelName(settings.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILENAME,
            maxBytes=max(settings.max_size_mb, 1) * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        setattr(file_handler, _HANDLER_MARKER, True)
        logger.addHandler(file_handler)

    return logger


__all__ = ["configure_logging", "LOG_FILENAME", "LOG_FORMAT"]
