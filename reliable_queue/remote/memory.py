"""
In-process queue service.

Implements the RemoteQueueService protocol with the same visibility-timeout,
long-poll and name-cooldown behaviour as the hosted service, so the queue
lifecycle can run locally without network access.
"""

import logging
import re
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Sequence

from reliable_queue.constants import (
    ATTR_APPROXIMATE_NUMBER_OF_MESSAGES,
    ATTR_APPROXIMATE_NUMBER_OF_MESSAGES_NOT_VISIBLE,
    ATTR_APPROXIMATE_RECEIVE_COUNT,
    MAX_MESSAGE_BODY_BYTES,
    MAX_VISIBILITY_TIMEOUT_SECONDS,
    MAX_WAIT_TIME_SECONDS,
    QUEUE_NAME_MAX_LENGTH,
    QUEUE_RECREATE_COOLDOWN_SECONDS,
)
from reliable_queue.errors import (
    QueueDeletedRecentlyError,
    QueueDoesNotExistError,
    ReceiptHandleInvalidError,
    RemoteQueueError,
)
from reliable_queue.types.queue import RemoteMessage

logger = logging.getLogger(__name__)

_QUEUE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(\.fifo)?$")
_DEFAULT_VISIBILITY_TIMEOUT = 30
_MAX_MESSAGES_PER_RECEIVE = 10

# Long polls re-check for expired leases at this interval
_POLL_SLICE_SECONDS = 0.05


@dataclass
class _StoredMessage:
    message_id: str
    body: str
    visible_at: float = 0.0
    receipt_handle: str | None = None
    receive_count: int = 0


@dataclass
class _StoredQueue:
    name: str
    queue_id: str
    messages: dict[str, _StoredMessage] = field(default_factory=dict)
    handles: dict[str, str] = field(default_factory=dict)


class InMemoryQueueService:
    """
    Thread-safe in-memory RemoteQueueService.

    Messages are delivered in insertion order. A received message is hidden
    until its visibility timeout elapses, after which it is delivered again
    with a new receipt handle; older handles stop working.
    """

    name = "memory"

    def __init__(
        self,
        *,
        recreate_cooldown_seconds: float = QUEUE_RECREATE_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        base_url: str = "memory://queues/",
    ):
        """
        Initialize the service.

        Args:
            recreate_cooldown_seconds: How long a deleted queue name stays blocked.
            clock: Monotonic clock used for visibility timeouts.
            base_url: Prefix for generated queue ids.
        """
        self._cooldown = recreate_cooldown_seconds
        self._clock = clock
        self._base_url = base_url
        self._lock = threading.Lock()
        self._cond_changed = threading.Condition(self._lock)
        self._queues: dict[str, _StoredQueue] = {}
        self._ids_by_name: dict[str, str] = {}
        self._deleted_at: dict[str, float] = {}

    def create_queue(self, queue_name: str) -> str:
        if len(queue_name) > QUEUE_NAME_MAX_LENGTH or not _QUEUE_NAME_PATTERN.match(queue_name):
            raise RemoteQueueError(
                f"Invalid queue name: {queue_name!r}", code="InvalidParameterValue"
            )

        with self._lock:
            existing = self._ids_by_name.get(queue_name)
            if existing is not None:
                return existing

            deleted_at = self._deleted_at.get(queue_name)
            if deleted_at is not None and self._clock() - deleted_at < self._cooldown:
                raise QueueDeletedRecentlyError(
                    f"Queue {queue_name!r} was deleted recently",
                    code="AWS.SimpleQueueService.QueueDeletedRecently",
                )

            queue_id = f"{self._base_url}{queue_name}"
            self._queues[queue_id] = _StoredQueue(name=queue_name, queue_id=queue_id)
            self._ids_by_name[queue_name] = queue_id
            self._deleted_at.pop(queue_name, None)

        logger.info("Created in-memory queue", extra={"queue_name": queue_name})
        return queue_id

    def delete_queue(self, queue_id: str) -> None:
        with self._lock:
            queue = self._get_queue(queue_id)
            del self._queues[queue_id]
            del self._ids_by_name[queue.name]
            self._deleted_at[queue.name] = self._clock()
            self._cond_changed.notify_all()

        logger.info("Deleted in-memory queue", extra={"queue_name": queue.name})

    def send_message(self, queue_id: str, body: str) -> str | None:
        if not body:
            raise RemoteQueueError("Message body must not be empty", code="InvalidParameterValue")
        if len(body.encode("utf-8")) > MAX_MESSAGE_BODY_BYTES:
            raise RemoteQueueError(
                f"Message body exceeds {MAX_MESSAGE_BODY_BYTES} bytes",
                code="InvalidParameterValue",
            )

        message = _StoredMessage(message_id=str(uuid.uuid4()), body=body)
        with self._lock:
            queue = self._get_queue(queue_id)
            queue.messages[message.message_id] = message
            self._cond_changed.notify_all()

        return message.message_id

    def receive_message(
        self,
        queue_id: str,
        max_messages: int = 1,
        visibility_timeout: int | None = None,
        wait_time_seconds: int = 0,
    ) -> list[RemoteMessage]:
        if not 1 <= max_messages <= _MAX_MESSAGES_PER_RECEIVE:
            raise RemoteQueueError(
                f"MaxNumberOfMessages must be between 1 and {_MAX_MESSAGES_PER_RECEIVE}",
                code="InvalidParameterValue",
            )
        if not 0 <= wait_time_seconds <= MAX_WAIT_TIME_SECONDS:
            raise RemoteQueueError(
                f"WaitTimeSeconds must be between 0 and {MAX_WAIT_TIME_SECONDS}",
                code="InvalidParameterValue",
            )
        if visibility_timeout is None:
            visibility_timeout = _DEFAULT_VISIBILITY_TIMEOUT
        self._check_visibility_timeout(visibility_timeout)

        deadline = time.monotonic() + wait_time_seconds
        with self._lock:
            while True:
                queue = self._get_queue(queue_id)
                received = self._lease_visible(queue, max_messages, visibility_timeout)
                remaining = deadline - time.monotonic()
                if received or remaining <= 0:
                    return received
                self._cond_changed.wait(timeout=min(remaining, _POLL_SLICE_SECONDS))

    def change_message_visibility(
        self,
        queue_id: str,
        receipt_handle: str,
        visibility_timeout: int,
    ) -> bool:
        self._check_visibility_timeout(visibility_timeout)

        with self._lock:
            queue = self._get_queue(queue_id)
            message = self._get_in_flight(queue, receipt_handle)
            message.visible_at = self._clock() + visibility_timeout
            if visibility_timeout == 0:
                self._cond_changed.notify_all()

        return True

    def delete_message(self, queue_id: str, receipt_handle: str) -> bool:
        with self._lock:
            queue = self._get_queue(queue_id)
            message = self._get_in_flight(queue, receipt_handle)
            del queue.messages[message.message_id]
            del queue.handles[receipt_handle]

        return True

    def get_queue_attributes(
        self,
        queue_id: str,
        attribute_names: Sequence[str],
    ) -> dict[str, str]:
        with self._lock:
            queue = self._get_queue(queue_id)
            now = self._clock()
            visible = sum(1 for m in queue.messages.values() if m.visible_at <= now)
            in_flight = len(queue.messages) - visible

        attributes = {
            ATTR_APPROXIMATE_NUMBER_OF_MESSAGES: str(visible),
            ATTR_APPROXIMATE_NUMBER_OF_MESSAGES_NOT_VISIBLE: str(in_flight),
        }
        if "All" in attribute_names:
            return attributes
        return {name: attributes[name] for name in attribute_names if name in attributes}

    def _get_queue(self, queue_id: str) -> _StoredQueue:
        """Look up a queue (must be called with lock held)."""
        queue = self._queues.get(queue_id)
        if queue is None:
            raise QueueDoesNotExistError(
                f"Queue does not exist: {queue_id}",
                code="AWS.SimpleQueueService.NonExistentQueue",
            )
        return queue

    def _get_in_flight(self, queue: _StoredQueue, receipt_handle: str) -> _StoredMessage:
        """Resolve a receipt handle to a leased message (must be called with lock held)."""
        message_id = queue.handles.get(receipt_handle)
        message = queue.messages.get(message_id) if message_id is not None else None
        if (
            message is None
            or message.receipt_handle != receipt_handle
            or message.visible_at <= self._clock()
        ):
            raise ReceiptHandleInvalidError(
                "Receipt handle is invalid or its lease has expired",
                code="ReceiptHandleIsInvalid",
            )
        return message

    def _lease_visible(
        self,
        queue: _StoredQueue,
        max_messages: int,
        visibility_timeout: int,
    ) -> list[RemoteMessage]:
        """Lease up to max_messages visible messages (must be called with lock held)."""
        now = self._clock()
        received: list[RemoteMessage] = []

        for message in queue.messages.values():
            if len(received) >= max_messages:
                break
            if message.visible_at > now:
                continue

            # A new delivery invalidates the previous receipt handle
            if message.receipt_handle is not None:
                queue.handles.pop(message.receipt_handle, None)

            message.receipt_handle = uuid.uuid4().hex
            message.visible_at = now + visibility_timeout
            message.receive_count += 1
            queue.handles[message.receipt_handle] = message.message_id

            received.append(
                RemoteMessage(
                    body=message.body,
                    receipt_handle=message.receipt_handle,
                    message_id=message.message_id,
                    attributes={ATTR_APPROXIMATE_RECEIVE_COUNT: str(message.receive_count)},
                )
            )

        return received

    @staticmethod
    def _check_visibility_timeout(visibility_timeout: int) -> None:
        if not 0 <= visibility_timeout <= MAX_VISIBILITY_TIMEOUT_SECONDS:
            raise RemoteQueueError(
                f"VisibilityTimeout must be between 0 and {MAX_VISIBILITY_TIMEOUT_SECONDS}",
                code="InvalidParameterValue",
            )
