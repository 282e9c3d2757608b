"""Logging configuration for the link registry."""

import json
import logging
import sys
from typing import Iterable, Optional


ROOT_LOGGERS = ("linkcore", "web_app")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, safe for messages containing quotes."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
    logger_names: Iterable[str] = ROOT_LOGGERS,
) -> logging.Logger:
    """Setup logging configuration.

    Handlers are attached to the package loggers (``linkcore`` and
    ``web_app``) so module loggers created with ``getLogger(__name__)``
    inherit them.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_format: Whether to use JSON format
        logger_names: Package loggers to configure

    Returns:
        The ``linkcore`` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        formatter = JsonLineFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)

    for name in logger_names:
        logger = logging.getLogger(name)
        logger.setLevel(numeric_level)
        logger.handlers.clear()
        for handler in handlers:
            logger.addHandler(handler)

    return logging.getLogger("linkcore")
