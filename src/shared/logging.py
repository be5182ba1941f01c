"""Logging configuration for all bounded contexts."""

import logging

import structlog

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """Route stdlib and structlog output through one processor chain."""
    log_level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s", level=log_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy library loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("stripe").setLevel(logging.WARNING)
