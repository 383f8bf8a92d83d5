"""
Reliable queue over a remote queue service.
Implements the claim/release/delete item lifecycle on top of raw
send/receive/change-visibility/delete primitives.
"""

import logging
import time
from typing import Any

from reliable_queue.codec import Codec, JsonCodec
from reliable_queue.constants import (
    ATTR_APPROXIMATE_NUMBER_OF_MESSAGES,
    ATTR_APPROXIMATE_RECEIVE_COUNT,
    SPAN_CLAIM,
    SPAN_COUNT,
    SPAN_DELETE,
    SPAN_ENQUEUE,
    SPAN_EXTEND,
    SPAN_RELEASE,
    ClaimOutcome,
)
from reliable_queue.errors import CodecError, QueueItemValidationError
from reliable_queue.observability.metrics import MetricsCollector, get_metrics
from reliable_queue.observability.tracing import get_tracer
from reliable_queue.remote.protocol import RemoteQueueService
from reliable_queue.types.queue import ClaimPolicy, QueueIdentity, QueueItem

logger = logging.getLogger(__name__)


class ReliableQueue:
    """
    Reliable queue bound to a single remote queue.

    Item states, as seen by the queue:
    - enqueued -> leased (claim)
    - leased -> deleted (delete, terminal)
    - leased -> visible (release, or the lease expires without renewal)

    The queue keeps no local state about items. Hiding a leased item from
    other claimants is left entirely to the remote visibility timeout, so one
    instance can be shared by any number of callers and processes.
    """

    def __init__(
        self,
        identity: QueueIdentity,
        service: RemoteQueueService,
        policy: ClaimPolicy,
        codec: Codec | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the queue.

        Args:
            identity: The provisioned queue identity.
            service: The remote queue service.
            policy: Default lease and long-poll policy for claims.
            codec: Payload codec. Defaults to JSON.
            metrics: Optional metrics collector. Uses the global one if not provided.
        """
        self._identity = identity
        self._service = service
        self._policy = policy
        self._codec = codec or JsonCodec()
        self._metrics = metrics or get_metrics()

    @property
    def name(self) -> str:
        """Logical queue name."""
        return self._identity.logical_name

    @property
    def identity(self) -> QueueIdentity:
        return self._identity

    @property
    def policy(self) -> ClaimPolicy:
        return self._policy

    @property
    def codec(self) -> Codec:
        return self._codec

    def enqueue(self, payload: Any, serialize: bool = True) -> str | None:
        """
        Send an item to the queue.

        The remote service rejects bodies above its size limit; that error
        propagates unchanged.

        Args:
            payload: The payload to send. Passing an item previously returned
                by claim() is a mistake; only its payload is sent.
            serialize: Encode the payload with the codec. When False the
                payload is sent as-is and must be text.

        Returns:
            The message id assigned by the remote service, or None if the
            service did not acknowledge the message.
        """
        if isinstance(payload, QueueItem):
            logger.warning(
                "Claimed item passed to enqueue; only its payload is queued. "
                "Pass item.payload instead of the whole item.",
                extra={"queue": self.name, "item_id": payload.item_id},
            )
            payload = payload.payload

        body = self._codec.encode(payload) if serialize else self._raw_body(payload)

        with get_tracer().start_as_current_span(SPAN_ENQUEUE) as span:
            span.set_attribute("queue", self.name)
            item_id = self._service.send_message(self._identity.remote_id, body)

        self._metrics.record_enqueued(self.name, acknowledged=item_id is not None)

        if item_id is None:
            logger.warning("Item was not acknowledged by the queue", extra={"queue": self.name})
            return None

        logger.debug("Enqueued item", extra={"queue": self.name, "item_id": item_id})
        return item_id

    def approximate_count(self) -> int:
        """
        Return the approximate number of visible items in the queue.

        The count is a heuristic (for scaling decisions and the like), so a
        missing or unparseable attribute is reported as 0 rather than raised.
        """
        with get_tracer().start_as_current_span(SPAN_COUNT) as span:
            span.set_attribute("queue", self.name)
            attributes = self._service.get_queue_attributes(
                self._identity.remote_id,
                [ATTR_APPROXIMATE_NUMBER_OF_MESSAGES],
            )

        try:
            count = max(0, int(attributes.get(ATTR_APPROXIMATE_NUMBER_OF_MESSAGES) or 0))
        except (TypeError, ValueError):
            logger.warning(
                "Unparseable queue depth attribute",
                extra={
                    "queue": self.name,
                    "value": attributes.get(ATTR_APPROXIMATE_NUMBER_OF_MESSAGES),
                },
            )
            count = 0

        self._metrics.update_queue_depth(self.name, count)
        return count

    def claim(self, lease_seconds: int = 0, deserialize: bool = True) -> QueueItem | None:
        """
        Claim a single item, hiding it from other claimants for the lease.

        The long-poll wait is capped at the lease: a caller asking for a short
        lease must not block longer than that lease lasts. A wait time of 0
        never blocks.

        Args:
            lease_seconds: Lease (visibility timeout) for this claim. 0 uses
                the policy's claim timeout.
            deserialize: Decode the message body with the codec.

        Returns:
            The claimed item, or None if no item was available.

        Raises:
            ValueError: If lease_seconds is negative.
            CodecError: If the body cannot be decoded. The item stays leased
                and becomes visible again when the lease expires.
        """
        lease = self._policy.effective_lease(lease_seconds)
        wait = self._policy.effective_wait(lease_seconds)

        start = time.monotonic()
        with get_tracer().start_as_current_span(SPAN_CLAIM) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("lease_seconds", lease)
            span.set_attribute("wait_time_seconds", wait)
            messages = self._service.receive_message(
                self._identity.remote_id,
                max_messages=1,
                visibility_timeout=lease,
                wait_time_seconds=wait,
            )
        duration = time.monotonic() - start

        if not messages:
            self._metrics.record_claim(self.name, ClaimOutcome.EMPTY, duration)
            return None

        message = messages[0]
        if not message.receipt_handle or not message.message_id:
            logger.warning(
                "Received message without receipt handle or message id",
                extra={"queue": self.name, "item_id": message.message_id},
            )
            self._metrics.record_claim(self.name, ClaimOutcome.INVALID, duration)
            return None

        self._metrics.record_claim(self.name, ClaimOutcome.HIT, duration)

        if deserialize:
            try:
                payload = self._codec.decode(message.body)
            except CodecError:
                logger.error(
                    "Failed to decode claimed item",
                    extra={"queue": self.name, "item_id": message.message_id},
                )
                raise
        else:
            payload = message.body

        logger.debug(
            "Claimed item",
            extra={"queue": self.name, "item_id": message.message_id, "lease_seconds": lease},
        )
        return QueueItem(
            payload=payload,
            receipt_handle=message.receipt_handle,
            item_id=message.message_id,
            receive_count=self._receive_count(message.attributes),
        )

    def release(self, item: QueueItem) -> bool:
        """
        Release a claim early, making the item visible to other claimants.

        Args:
            item: An item returned by claim().

        Returns:
            True if the remote service acknowledged the release.
        """
        self._require_receipt_handle(item, "release")

        with get_tracer().start_as_current_span(SPAN_RELEASE) as span:
            span.set_attribute("queue", self.name)
            released = self._service.change_message_visibility(
                self._identity.remote_id,
                item.receipt_handle,
                0,
            )

        if released:
            self._metrics.record_released(self.name)
            logger.debug("Released item", extra={"queue": self.name, "item_id": item.item_id})
        else:
            logger.warning(
                "Release was not acknowledged",
                extra={"queue": self.name, "item_id": item.item_id},
            )
        return released

    def extend(self, item: QueueItem, lease_seconds: int) -> bool:
        """
        Renew the lease on a claimed item.

        The new lease runs for lease_seconds from now. The remote service caps
        the cumulative lease of a delivery (12 hours) and rejects requests
        beyond it.

        Args:
            item: An item returned by claim().
            lease_seconds: New lease length in seconds.

        Returns:
            True if the remote service acknowledged the extension.
        """
        if lease_seconds < 0:
            raise ValueError(f"lease_seconds must be non-negative, got {lease_seconds}")
        self._require_receipt_handle(item, "extend")

        with get_tracer().start_as_current_span(SPAN_EXTEND) as span:
            span.set_attribute("queue", self.name)
            span.set_attribute("lease_seconds", lease_seconds)
            extended = self._service.change_message_visibility(
                self._identity.remote_id,
                item.receipt_handle,
                lease_seconds,
            )

        if extended:
            self._metrics.record_extended(self.name)
        return extended

    def delete(self, item: QueueItem) -> bool:
        """
        Delete a processed item from the queue.

        Deletion uses the receipt handle of this delivery. Deleting with a
        handle whose lease has expired is a remote error and propagates.

        Args:
            item: An item returned by claim().

        Returns:
            True if the remote service acknowledged the deletion.

        Raises:
            QueueItemValidationError: If the item has no item id or receipt
                handle. No remote call is made.
        """
        if not item.item_id:
            raise QueueItemValidationError("An item that needs to be deleted requires an item id")
        self._require_receipt_handle(item, "delete")

        with get_tracer().start_as_current_span(SPAN_DELETE) as span:
            span.set_attribute("queue", self.name)
            deleted = self._service.delete_message(self._identity.remote_id, item.receipt_handle)

        if deleted:
            self._metrics.record_deleted(self.name)
            logger.debug("Deleted item", extra={"queue": self.name, "item_id": item.item_id})
        else:
            logger.warning(
                "Delete was not acknowledged",
                extra={"queue": self.name, "item_id": item.item_id},
            )
        return deleted

    def destroy(self) -> None:
        """Delete the remote queue and everything in it."""
        self._service.delete_queue(self._identity.remote_id)
        logger.info(
            "Destroyed queue",
            extra={"queue": self.name, "remote_id": self._identity.remote_id},
        )

    @staticmethod
    def _receive_count(attributes: dict[str, str]) -> int:
        """Delivery count from message attributes; 1 when not reported."""
        try:
            return max(1, int(attributes.get(ATTR_APPROXIMATE_RECEIVE_COUNT) or 1))
        except (TypeError, ValueError):
            return 1

    @staticmethod
    def _raw_body(payload: Any) -> str:
        """Pass-through body for unserialized payloads."""
        if isinstance(payload, str):
            return payload
        if isinstance(payload, bytes):
            try:
                return payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CodecError(f"Raw payload is not UTF-8 text: {e}") from e
        raise CodecError(
            f"Raw payloads must be str or bytes, got {type(payload).__name__}; "
            "use serialize=True for structured payloads"
        )

    @staticmethod
    def _require_receipt_handle(item: QueueItem, operation: str) -> None:
        if not item.receipt_handle:
            raise QueueItemValidationError(f"An item to {operation} requires a receipt handle")
