"""
Structured logging configuration using structlog.

JSON lines in production, colored console output in development. Every
log event emitted during a fetch run carries the ``source`` and
``run_id`` of that run, including events from the translation engine and
the repositories it calls into.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import uuid4

import structlog
from structlog.types import Processor

from buzzing.config.settings import get_settings
from buzzing.observability.tracing import add_trace_context

# Client libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "asyncpg", "tencentcloud_sdk_common")


def setup_logging() -> None:
    """
    Configure structlog and route stdlib logging to stdout.

    Call once per process, before any fetch run starts.
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_trace_context,
    ]

    if settings.is_production:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def new_run_id() -> str:
    return uuid4().hex[:12]


@contextmanager
def fetch_run_context(source: str, run_id: str | None = None) -> Iterator[str]:
    """
    Bind ``source`` and ``run_id`` for every log event inside the block.

    The binding lives in contextvars, so concurrent runs in separate tasks
    do not see each other's fields. Yields the run id.

    Usage:
        with fetch_run_context("hn") as run_id:
            logger.info("Fetch run started")
    """
    run_id = run_id or new_run_id()
    with structlog.contextvars.bound_contextvars(source=source, run_id=run_id):
        yield run_id
