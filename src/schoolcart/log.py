"""Structured logging setup for schoolcart (structlog)."""

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_ENV = "SCHOOLCART_LOG_LEVEL"
DEBUG_ENV = "SCHOOLCART_DEBUG"


def setup_logging(log_level: str | None = None, is_debug: bool | None = None) -> None:
    """
    Configure structlog for the CLI and API server.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR. Defaults to $SCHOOLCART_LOG_LEVEL or INFO.
        is_debug: Human-readable console output instead of JSON lines.
            Defaults to $SCHOOLCART_DEBUG.
    """
    if log_level is None:
        log_level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if is_debug is None:
        is_debug = os.environ.get(DEBUG_ENV, "").lower() in ("1", "true", "yes")

    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    # Console output while debugging, JSON lines otherwise
    if is_debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structlog logger bound to a module name."""
    return structlog.get_logger(name)
