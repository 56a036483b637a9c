"""
Structured logging configuration using structlog.

Provides JSON-formatted logs with contextual information that works across
concurrently running catalog operations.

Features:
- JSON structured logging for production
- Pretty console logging for development
- Actor ID tracking per task
- Context binding (item_id, tag, etc.)
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor

from gifcatalog.config import Settings, settings

# Context variable for the actor performing the current operation
actor_id_ctx: ContextVar[int | None] = ContextVar("actor_id", default=None)


def add_context_info(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add contextual information to log records."""
    actor_id = actor_id_ctx.get(None)
    if actor_id is not None:
        event_dict.setdefault("actor_id", actor_id)

    return event_dict


def configure_logging(config: Settings | None = None) -> None:
    """
    Configure structured logging for the catalog.

    In development: Pretty console output with colors
    Elsewhere: JSON-formatted logs for aggregation
    """
    config = config or settings

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if config.ENVIRONMENT == "development" and config.LOG_FORMAT != "json":
        processors: list[Processor] = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True)
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, config.LOG_LEVEL.upper()),
    )

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance

    Example:
        logger = get_logger(__name__)
        logger.info("item_ingested", item_id="AgADBAADbQ", actor_id=123)
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


@contextmanager
def actor_context(actor_id: int | None) -> Iterator[None]:
    """
    Tag every log emitted inside the block with the acting user's ID.

    The previous value is restored on exit, so nested operations
    (e.g. replace_tags calling ensure) keep the outer actor.
    """
    token = actor_id_ctx.set(actor_id)
    try:
        yield
    finally:
        actor_id_ctx.reset(token)

