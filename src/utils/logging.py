"""Shared logging utilities for structured logging across the application.

This module provides a centralized logging configuration using structlog for
structured, JSON-formatted logs. Pipeline events are logged as snake_case
event names with key/value context (video_id, batch numbers, counts).
"""

import logging
import os
import sys

import structlog

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name. Defaults to the LOG_LEVEL environment variable,
            falling back to INFO.
    """
    global _configured

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured structured logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module).

    Returns:
        Configured structlog logger instance ready for use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("upsert_completed", video_id="dQw4w9WgXcQ", records=12)
    """
    if not _configured:
        configure_logging()

    return structlog.get_logger(name)
