"""Structured logging for the pattern store, built on structlog over stdlib logging.

Every event emitted during a recording session carries the session's
symbol and store files, bound once through ``structlog.contextvars``.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog with console or JSON rendering.

    Rendering format is controlled by the LOG_FORMAT environment variable:
    - "json" for machine-readable output (one event per line, for log shipping)
    - "console" for human-readable output (default)
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


@contextmanager
def session_context(symbol: str, index_path: str, data_path: str) -> Iterator[None]:
    """Bind the session's symbol and store files to every log event inside the block.

    Previously bound context is cleared on entry and on exit, so sessions
    run back to back never leak fields into each other.
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        symbol=symbol,
        index_path=index_path,
        data_path=data_path,
    )
    try:
        yield
    finally:
        structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
