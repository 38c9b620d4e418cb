"""
Logging utilities for the search service.

Structured logging on top of the standard library logger, rendered as JSON
in deployments and as colored console lines during development.
"""

import logging
import sys
from typing import Any, List

import structlog


def build_processors(json_logs: bool) -> List[Any]:
    """
    Build the structlog processor chain.

    Both chains render ``exc_info``: JSON output carries a structured
    ``exception`` field, console output prints the traceback below the event.
    """
    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_logs:
        processors += [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors += [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]
    return processors


def setup_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Set up structured logging for the search service.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to output JSON format logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # Third-party loggers stay at warning
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    return structlog.get_logger(name)


def log_search_event(logger: Any, event_type: str, query: str, **kwargs: Any) -> None:
    """
    Log a search event with structured data.

    Args:
        logger: Structured logger instance
        event_type: Type of event (search_completed, search_failed, etc.)
        query: Query being processed
        **kwargs: Additional event data
    """
    event_data = {"query": query, **kwargs}

    if event_type.endswith("_error") or event_type.endswith("_failed"):
        logger.error(event_type, **event_data)
    elif event_type.endswith("_warning") or event_type.endswith("_timeout"):
        logger.warning(event_type, **event_data)
    else:
        logger.info(event_type, **event_data)
