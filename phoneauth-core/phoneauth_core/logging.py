"""
Phone Auth Logging
==================
structlog configuration for services embedding the library.

Usage:
    from phoneauth_core.logging import setup_logging

    setup_logging(service_name="phoneauth", json_logs=True)
"""

import logging
import os
import sys
from typing import Optional
import structlog


def setup_logging(
    service_name: str = "phoneauth",
    json_logs: Optional[bool] = None,
    level: Optional[str] = None,
) -> None:
    """
    Configure structlog processors and bind the service name.

    Args:
        service_name: Bound to every event as ``service``
        json_logs: Render JSON lines instead of the console renderer
            (default: LOG_FORMAT=json)
        level: Minimum level name (default: LOG_LEVEL or INFO)
    """
    if json_logs is None:
        json_logs = os.getenv("LOG_FORMAT", "console").lower() == "json"
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    min_level = logging.getLevelName(level_name)
    if not isinstance(min_level, int):
        min_level = logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
    structlog.contextvars.bind_contextvars(service=service_name)
