"""
Structured logging for the rewards service.

JSON lines when LOG_FORMAT=json, coloured console output otherwise. Everything
goes to stdout; the process manager decides where it ends up.
"""

import logging
import sys

import structlog

from island_rewards.config import settings


def setup_logging() -> None:
    """Configure structlog and route stdlib loggers through the same level."""
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # APScheduler, httpx and uvicorn use stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.INFO)


def get_logger(name: str | None = None):
    """
    Get a structlog logger instance.

    Args:
        name: Optional logger name bound as ``logger_name``

    Returns:
        Configured structlog logger
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


def short_pubkey(pubkey: str | None) -> str | None:
    """Shorten a pubkey to its first 8 characters for log lines."""
    if not pubkey:
        return None
    return pubkey[:8]
