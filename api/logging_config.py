"""
============================================================================
FILE: logging_config.py
LOCATION: api/logging_config.py
============================================================================

PURPOSE:
    Provides configurable logging infrastructure with two output formats:
    - JSON structured logs for production (machine-readable, for log aggregators)
    - Human-readable logs for development (console-friendly)

ROLE IN PROJECT:
    Centralizes logging configuration for the backend. Routers and services
    call get_logger("<area>") to obtain child loggers of the "kelilink"
    logger with consistent formatting.

KEY COMPONENTS:
    - StructuredFormatter: JSON log formatter for production environments
    - DevelopmentFormatter: Human-readable formatter for local development
    - setup_logging(level, production, logger_name): Configure base logger
    - get_logger(name): Get a child logger with the given name

LOG FORMAT (Development):
    HH:MM:SS [LEVEL] module: message

LOG FORMAT (Production/JSON):
    {"timestamp": "...", "level": "...", "module": "...", "message": "..."}

DEPENDENCIES:
    - External: logging (Python standard library)
    - Internal: None

USAGE:
    from api.logging_config import get_logger

    logger = get_logger("accounts")
    logger.info("Peddler registered")
============================================================================
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


BASE_LOGGER_NAME = "kelilink"


class StructuredFormatter(logging.Formatter):
    """JSON-style structured log formatter for production."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "message": record.getMessage(),
        }

        if record.funcName:
            log_data["function"] = record.funcName

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed as logger.info(..., extra={"extra_data": {...}})
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable log formatter for development."""

    FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    def __init__(self):
        super().__init__(self.FORMAT, datefmt="%H:%M:%S")


def setup_logging(
    level: str = "INFO",
    production: bool = False,
    logger_name: str = BASE_LOGGER_NAME,
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        production: Use JSON format if True, human-readable if False
        logger_name: Name of the logger instance

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if production:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a child logger with the given name."""
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    if name:
        return base_logger.getChild(name)
    return base_logger


logger = setup_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    production=os.getenv("LOG_FORMAT", "text").lower() == "json",
)
