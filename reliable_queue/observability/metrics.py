"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from reliable_queue.constants import (
    METRIC_CLAIM_WAIT,
    METRIC_ITEMS_CLAIMED,
    METRIC_ITEMS_DELETED,
    METRIC_ITEMS_ENQUEUED,
    METRIC_ITEMS_RELEASED,
    METRIC_LEASES_EXTENDED,
    METRIC_PROVISION_RETRIES,
    METRIC_QUEUE_DEPTH,
    ClaimOutcome,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for queue operations.

    Collects metrics for:
    - Approximate backlog per queue
    - Item enqueue, claim, release, extend and delete counts
    - Time spent blocked in long polls
    - Provisioning retries on recently deleted queue names
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Approximate number of visible items in the queue",
            ["queue"],
            registry=self._registry,
        )

        self.items_enqueued = Counter(
            METRIC_ITEMS_ENQUEUED,
            "Total number of items enqueued",
            ["queue", "acknowledged"],
            registry=self._registry,
        )

        self.items_claimed = Counter(
            METRIC_ITEMS_CLAIMED,
            "Total number of claim requests by outcome",
            ["queue", "outcome"],
            registry=self._registry,
        )

        self.items_released = Counter(
            METRIC_ITEMS_RELEASED,
            "Total number of items released before their lease expired",
            ["queue"],
            registry=self._registry,
        )

        self.items_deleted = Counter(
            METRIC_ITEMS_DELETED,
            "Total number of items deleted after processing",
            ["queue"],
            registry=self._registry,
        )

        self.leases_extended = Counter(
            METRIC_LEASES_EXTENDED,
            "Total number of lease extensions",
            ["queue"],
            registry=self._registry,
        )

        self.claim_wait = Histogram(
            METRIC_CLAIM_WAIT,
            "Time spent in claim requests in seconds",
            ["queue", "outcome"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
            registry=self._registry,
        )

        self.provision_retries = Counter(
            METRIC_PROVISION_RETRIES,
            "Total number of provisioning retries after a recent queue deletion",
            ["queue"],
            registry=self._registry,
        )

    def record_enqueued(self, queue: str, acknowledged: bool) -> None:
        """Record an enqueue attempt."""
        self.items_enqueued.labels(queue=queue, acknowledged=str(acknowledged).lower()).inc()

    def record_claim(self, queue: str, outcome: ClaimOutcome, duration_seconds: float) -> None:
        """Record a claim request and how long it blocked."""
        self.items_claimed.labels(queue=queue, outcome=outcome.value).inc()
        self.claim_wait.labels(queue=queue, outcome=outcome.value).observe(duration_seconds)

    def record_released(self, queue: str) -> None:
        """Record an early release."""
        self.items_released.labels(queue=queue).inc()

    def record_extended(self, queue: str) -> None:
        """Record a lease extension."""
        self.leases_extended.labels(queue=queue).inc()

    def record_deleted(self, queue: str) -> None:
        """Record a deletion."""
        self.items_deleted.labels(queue=queue).inc()

    def record_provision_retry(self, queue: str) -> None:
        """Record a provisioning retry."""
        self.provision_retries.labels(queue=queue).inc()

    def update_queue_depth(self, queue: str, depth: int) -> None:
        """Update the approximate backlog for a queue."""
        self.queue_depth.labels(queue=queue).set(depth)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
