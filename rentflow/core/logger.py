"""Logging setup for rentflow.

``configure_logging`` runs once at start-up and attaches handlers to the
``rentflow`` logger from the ``RENTFLOW_LOG_*`` settings. Modules log through
``logging.getLogger(__name__)`` and inherit them.
"""

import logging
import logging.handlers
import os
from typing import Optional

from rentflow.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "passlib")


def _resolve_level(settings: Settings) -> int:
    if settings.debug:
        return logging.DEBUG
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(
            f"Invalid log level: {settings.log_level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return level


def configure_logging(settings: Optional[Settings] = None, name: str = "rentflow") -> logging.Logger:
    """Configure the application logger.

    Console output is always on. A rotating file ``<log_dir>/<app_name>.log``
    is added when ``log_to_file`` is set. Debug mode forces DEBUG and leaves
    third-party loggers alone; otherwise they are held at WARNING.

    Returns:
        The configured logger
    """
    settings = settings or get_settings()
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(settings))

    if not settings.debug:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    # Already configured when the app module is imported twice
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.log_to_file:
        os.makedirs(settings.log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_dir, f"{settings.app_name}.log"),
            maxBytes=settings.log_max_bytes,
            backupCount=settings.log_backup_count,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
