"""
Worker process for processing queue items.

The worker claims items from a reliable queue, dispatches them to the
registered handlers, deletes them on success and releases them on failure so
they are redelivered.
"""

import logging
import os
import signal
import time

from prometheus_client import start_http_server

from reliable_queue.config import get_settings
from reliable_queue.constants import MAX_VISIBILITY_TIMEOUT_SECONDS, SPAN_PROCESS_ITEM
from reliable_queue.factory import provision_queue
from reliable_queue.observability.logging import bind_context, item_log_context, setup_logging
from reliable_queue.observability.tracing import get_tracer, setup_tracing
from reliable_queue.queue import ReliableQueue
from reliable_queue.types.queue import ItemContext
from reliable_queue.worker.handlers import execute_item

logger = logging.getLogger(__name__)


class Worker:
    """
    Item worker that claims and processes items one at a time.

    Features:
    - Lease per claim, defaulting to the queue's claim timeout
    - Delete on success, early release on retryable failure
    - Exponential hold-back for items no handler can process
    - Graceful shutdown on SIGTERM/SIGINT (after the current claim returns)
    """

    def __init__(
        self,
        queue: ReliableQueue,
        worker_id: str | None = None,
        lease_seconds: int | None = None,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            queue: The queue to consume.
            worker_id: Unique worker identifier. Defaults to hostname + PID.
            lease_seconds: Lease per claim. 0 uses the queue's claim timeout.
            poll_interval: Seconds to sleep after a claim came back empty.
        """
        settings = get_settings()

        self.queue = queue
        self.worker_id = worker_id or settings.worker_id or f"{os.uname().nodename}-{os.getpid()}"
        self.lease_seconds = (
            lease_seconds if lease_seconds is not None else settings.worker_lease_seconds
        )
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.worker_poll_interval_seconds
        )

        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Run the claim loop until stop() is called."""
        logger.info(
            "Worker starting",
            extra={"worker_id": self.worker_id, "queue": self.queue.name}
        )

        self._running = True

        while self._running:
            try:
                processed = self.process_one()

                # Long polls already wait on the remote side
                if not processed and self.queue.policy.wait_time_seconds == 0:
                    time.sleep(self.poll_interval)

            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"worker_id": self.worker_id}
                )
                time.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"worker_id": self.worker_id})

    def stop(self) -> None:
        """Stop the worker gracefully."""
        logger.info("Worker stopping", extra={"worker_id": self.worker_id})
        self._running = False

    def process_one(self) -> bool:
        """
        Claim and process a single item.

        Returns:
            True if an item was claimed, False if the queue was empty.
        """
        item = self.queue.claim(self.lease_seconds)
        if item is None:
            return False

        lease = self.queue.policy.effective_lease(self.lease_seconds)
        context = ItemContext(
            item_id=item.item_id,
            queue_name=self.queue.name,
            payload=item.payload,
            lease_seconds=lease,
        )

        with item_log_context(self.queue.name, item.item_id, worker_id=self.worker_id):
            with get_tracer().start_as_current_span(SPAN_PROCESS_ITEM) as span:
                span.set_attribute("queue", self.queue.name)
                span.set_attribute("item_id", item.item_id)
                result = execute_item(context)

            if result.success:
                self.queue.delete(item)
                logger.info("Item processed")
            elif result.retryable:
                self.queue.release(item)
                logger.warning(
                    "Item failed, released for redelivery",
                    extra={"error": result.error},
                )
            else:
                backoff = self.backoff_seconds(lease, item.receive_count)
                self.queue.extend(item, backoff)
                logger.warning(
                    f"Item cannot be handled, holding it back for {backoff}s",
                    extra={"error": result.error, "receive_count": item.receive_count},
                )

        return True

    @staticmethod
    def backoff_seconds(lease_seconds: int, receive_count: int) -> int:
        """
        Hold-back time for an item no handler can process.

        Doubles with every delivery, starting from the lease, up to the
        remote visibility ceiling.
        """
        base = max(lease_seconds, 1)
        exponent = min(max(receive_count, 1) - 1, 32)
        return min(base * 2**exponent, MAX_VISIBILITY_TIMEOUT_SECONDS)


def run() -> None:
    """Run the worker."""
    settings = get_settings()
    setup_logging(settings)
    if settings.otel_enabled:
        setup_tracing(settings)
    if settings.metrics_port is not None:
        start_http_server(settings.metrics_port)

    queue = provision_queue(settings.worker_queue_name)
    worker = Worker(queue)
    bind_context(worker_id=worker.worker_id)

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, lambda signum, frame: worker.stop())

    worker.start()


if __name__ == "__main__":
    run()
