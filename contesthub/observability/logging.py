"""
Structured logging configuration using structlog.

Services and the API log through structlog, while the ingestion and cache
layers use plain stdlib loggers. Both are rendered by the same processor
chain, so a stdlib record emitted inside an adapter run still carries the
bound ``source``/``stage`` (and, under the API, ``request_id``) fields.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import Processor

from contesthub.config.settings import Settings, get_settings
from contesthub.ingestion.schemas import Source

HANDLER_NAME = "contesthub"

# Transport chatter that drowns out per-source fetch logs at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "redis")


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the application.

    In production: JSON-formatted logs (easy to parse in log aggregators)
    In development: Pretty console output with colors

    Safe to call more than once: the handler installed by a previous call
    is replaced rather than duplicated.

    Usage:
        setup_logging()
        with source_context(Source.CODEFORCES, "fallback"):
            logger.info("Source fetched", records=12)
    """
    settings = settings or get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        renderers: list[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger.

    Args:
        name: Logger name (defaults to module name)

    Returns:
        Bound logger instance
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """
    Bind context variables to all subsequent log messages.

    Used for the API request id and the CLI command name.

    Args:
        **kwargs: Key-value pairs to bind
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def source_context(source: Source, stage: str) -> Iterator[None]:
    """
    Tag every log line inside the block with the adapter being run.

    Args:
        source: Upstream being fetched
        stage: "primary", "fallback" or "health"

    The previous values (if any) are restored on exit, so concurrent
    adapter tasks and nested blocks do not leak into each other.
    """
    with structlog.contextvars.bound_contextvars(source=source.value, stage=stage):
        yield
