"""Structured logging for graph and traversal events using structlog.

Graph operations log through structlog with snake_case event names and leave
output to the embedding application: until ``configure_logging`` is called the
``acyclic`` logger only carries a ``NullHandler``. Traversals bind a
``traversal_id`` for their duration so every event of one run, including those
logged from inside visit functions, can be correlated.

Example:
    >>> from acyclic.log_config import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_logs=False)
    >>> logger = get_logger(__name__)
    >>> logger.info("graph_loaded", vertex_count=12)
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

LIBRARY_LOGGER = "acyclic"

VERTEX_KEYS = frozenset({"vertex", "source", "target"})

logging.getLogger(LIBRARY_LOGGER).addHandler(logging.NullHandler())


def render_vertices(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Replace vertex values with their repr so arbitrary hashables serialize."""
    for key in VERTEX_KEYS & event_dict.keys():
        value = event_dict[key]
        if not isinstance(value, (str, int, float, bool)) and value is not None:
            event_dict[key] = repr(value)
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        render_vertices,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _renderer(json_logs: bool) -> Any:
    if json_logs:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """Route graph and traversal events to stdout at the given level.

    Args:
        level: Logging level name, any case (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, render one JSON object per event; otherwise use the
            human-readable console renderer

    Raises:
        ValueError: If an invalid log level is provided
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        msg = f"Invalid log level: {level}"
        raise ValueError(msg)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    logging.getLogger().setLevel(numeric_level)
    logging.getLogger(LIBRARY_LOGGER).setLevel(numeric_level)

    structlog.configure(
        processors=[*_shared_processors(), _renderer(json_logs)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, normally named after the calling module."""
    return structlog.get_logger(name)


@contextmanager
def traversal_context(**kwargs: Any) -> Iterator[str]:
    """Bind a fresh ``traversal_id`` (plus ``kwargs``) for the enclosed block.

    Tasks created inside the block inherit the binding, so events logged by
    visit functions carry the same id. The previous context is restored on exit.

    Yields:
        The traversal id
    """
    traversal_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(traversal_id=traversal_id, **kwargs):
        yield traversal_id


def bind_context(**kwargs: Any) -> None:
    """Bind context variables to every subsequent log entry.

    Example:
        >>> bind_context(graph="build-plan")
        >>> logger.info("traversal_started")  # Will include graph="build-plan"
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
