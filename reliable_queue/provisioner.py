"""
Queue provisioning.

Creates (or looks up) the remote queue behind a logical name and returns a
ReliableQueue bound to it.
"""

import logging
import time
from collections.abc import Callable

from reliable_queue.codec import Codec, get_codec
from reliable_queue.config import Settings, get_settings
from reliable_queue.constants import (
    QUEUE_NAME_MAX_LENGTH,
    QUEUE_NAME_SEPARATOR,
    SPAN_PROVISION_QUEUE,
)
from reliable_queue.errors import QueueDeletedRecentlyError, QueueProvisioningError
from reliable_queue.observability.metrics import MetricsCollector, get_metrics
from reliable_queue.observability.tracing import get_tracer
from reliable_queue.queue import ReliableQueue
from reliable_queue.remote.protocol import RemoteQueueService
from reliable_queue.types.queue import ClaimPolicy, QueueIdentity

logger = logging.getLogger(__name__)


def derive_queue_name(name: str, prefix: str = "") -> str:
    """
    Derive the remote-visible queue name for a logical name.

    Args:
        name: The logical queue name.
        prefix: Optional environment prefix.

    Returns:
        ``prefix_name`` (or ``name`` without a prefix), truncated to the
        remote service's queue name limit.
    """
    remote_name = f"{prefix}{QUEUE_NAME_SEPARATOR}{name}" if prefix else name
    return remote_name[:QUEUE_NAME_MAX_LENGTH]


class QueueProvisioner:
    """
    Provisions remote queues and binds them to ReliableQueue handles.

    Queue creation is idempotent on the remote side: creating an existing
    queue returns its id. A name deleted within the remote cooldown window is
    retried after a fixed backoff; any other failure is final.
    """

    def __init__(
        self,
        service: RemoteQueueService,
        settings: Settings | None = None,
        *,
        codec: Codec | None = None,
        metrics: MetricsCollector | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the provisioner.

        Args:
            service: The remote queue service.
            settings: Optional settings. Uses cached settings if not provided.
            codec: Payload codec for provisioned queues. Defaults to the
                configured codec.
            metrics: Optional metrics collector.
            sleep: Function used to wait between retries.
        """
        self._service = service
        self._settings = settings or get_settings()
        self._codec = codec or get_codec(self._settings.queue_codec)
        self._metrics = metrics or get_metrics()
        self._sleep = sleep

    @property
    def service(self) -> RemoteQueueService:
        return self._service

    def derive_queue_name(self, name: str) -> str:
        """Derive the remote name for a logical name using the configured prefix."""
        return derive_queue_name(name, self._settings.queue_name_prefix)

    def provision(self, name: str) -> ReliableQueue:
        """
        Provision a queue and return a handle bound to it.

        Args:
            name: The logical queue name.

        Returns:
            ReliableQueue bound to the remote queue, using the configured
            claim timeout and wait time.

        Raises:
            QueueProvisioningError: If the queue could not be created, or the
                configured retry ceiling was exhausted.
        """
        remote_name = self.derive_queue_name(name)
        backoff = self._settings.queue_recreate_backoff_seconds
        max_retries = self._settings.queue_recreate_max_retries
        retries = 0

        with get_tracer().start_as_current_span(SPAN_PROVISION_QUEUE) as span:
            span.set_attribute("queue", name)
            span.set_attribute("remote_name", remote_name)

            while True:
                try:
                    remote_id = self._service.create_queue(remote_name)
                    break
                except QueueDeletedRecentlyError as e:
                    if max_retries is not None and retries >= max_retries:
                        logger.error(
                            "Queue still recently deleted after retries",
                            extra={"queue": name, "remote_name": remote_name, "retries": retries},
                        )
                        raise QueueProvisioningError(
                            f"Queue {remote_name!r} was recently deleted; "
                            f"gave up after {retries} retries"
                        ) from e

                    retries += 1
                    self._metrics.record_provision_retry(name)
                    logger.warning(
                        f"Queue was recently deleted, retrying in {backoff}s",
                        extra={"queue": name, "remote_name": remote_name, "attempt": retries},
                    )
                    self._sleep(backoff)
                except Exception as e:
                    logger.exception(
                        "Failed to provision queue",
                        extra={"queue": name, "remote_name": remote_name},
                    )
                    raise QueueProvisioningError(
                        f"Failed to provision queue {remote_name!r}: {e}"
                    ) from e

            span.set_attribute("retries", retries)

        identity = QueueIdentity(
            logical_name=name,
            remote_id=remote_id,
            name_prefix=self._settings.queue_name_prefix,
        )
        policy = ClaimPolicy(
            claim_timeout_seconds=self._settings.queue_claim_timeout_seconds,
            wait_time_seconds=self._settings.queue_wait_time_seconds,
        )

        logger.info(
            "Provisioned queue",
            extra={"queue": name, "remote_id": remote_id, "backend": self._service.name},
        )
        return ReliableQueue(
            identity=identity,
            service=self._service,
            policy=policy,
            codec=self._codec,
            metrics=self._metrics,
        )
