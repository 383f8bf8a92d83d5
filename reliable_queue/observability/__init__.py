"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from reliable_queue.observability.logging import (
    QueueDefaults,
    bind_context,
    item_log_context,
    setup_logging,
)
from reliable_queue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    setup_metrics,
)
from reliable_queue.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "bind_context",
    "item_log_context",
    "QueueDefaults",
    "setup_metrics",
    "get_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
]
