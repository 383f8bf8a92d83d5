"""
Structured logging setup using structlog.

Queue modules log through the standard library with ``extra={...}``; the
setup here renders those records through structlog and stamps every line
with the queue backend and service it came from.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace

from reliable_queue.config import Settings, get_settings

# Loggers that are chatty at DEBUG, mostly per-request AWS SDK output
_NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with trace context added.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


class QueueDefaults:
    """
    Processor adding process-wide queue fields to every event.

    Fields already present on the event (from ``extra`` or bound context)
    take precedence.
    """

    def __init__(self, settings: Settings):
        self._fields = {
            "service": settings.otel_service_name,
            "backend": settings.queue_default,
        }
        if settings.queue_name_prefix:
            self._fields["queue_prefix"] = settings.queue_name_prefix

    @property
    def fields(self) -> dict[str, str]:
        return dict(self._fields)

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in self._fields.items():
            event_dict.setdefault(key, value)
        return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the process.

    Sets up structlog with JSON or console output based on configuration and
    routes standard library log records through the same renderer.

    Args:
        settings: Optional settings. Uses cached settings if not provided.
    """
    settings = settings or get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.stdlib.ExtraAdder(),
        QueueDefaults(settings),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all subsequent log messages.

    Args:
        **kwargs: Key-value pairs to add to log context.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


@contextmanager
def item_log_context(queue: str, item_id: str | None, **kwargs: Any) -> Iterator[None]:
    """
    Bind a claimed item's identifiers for the duration of its processing.

    Context bound before entering (such as the worker id) is restored on exit.
    """
    with structlog.contextvars.bound_contextvars(queue=queue, item_id=item_id, **kwargs):
        yield
