from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from flask import Flask

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Root of this package's module loggers ("attendance_tracker" or "src.attendance_tracker...").
PACKAGE_LOGGER = __name__.rsplit(".core.", 1)[0]


def configure_logging(app: Flask, *, level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Attach console (and optional rotating file) handlers to the app and package loggers."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    handlers.append(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=10485760, backupCount=10)  # 10MB
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    loggers = [logging.getLogger(PACKAGE_LOGGER)]
    if not app.logger.name.startswith(PACKAGE_LOGGER + "."):
        loggers.append(app.logger)

    for logger in loggers:
        for existing in list(logger.handlers):
            if getattr(existing, "_attendance_tracker", False):
                logger.removeHandler(existing)
        for handler in handlers:
            handler._attendance_tracker = True
            logger.addHandler(handler)
        logger.setLevel(log_level)

    if not app.debug:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
