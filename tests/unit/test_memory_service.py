"""
Unit tests for the in-memory queue service.
"""

import threading
import time

import pytest

from reliable_queue.errors import (
    QueueDeletedRecentlyError,
    QueueDoesNotExistError,
    ReceiptHandleInvalidError,
    RemoteQueueError,
)
from reliable_queue.remote.memory import InMemoryQueueService
from reliable_queue.remote.protocol import RemoteQueueService
from tests.conftest import FakeClock


@pytest.fixture
def queue_id(memory_service: InMemoryQueueService) -> str:
    return memory_service.create_queue("env1_jobs")


class TestQueueLifecycle:
    """Tests for queue creation and deletion."""

    def test_satisfies_protocol(self, memory_service: InMemoryQueueService):
        """Test the service implements the remote queue protocol."""
        assert isinstance(memory_service, RemoteQueueService)

    def test_create_is_idempotent(self, memory_service: InMemoryQueueService):
        """Test creating an existing queue returns the same id."""
        first = memory_service.create_queue("env1_jobs")

        assert memory_service.create_queue("env1_jobs") == first

    @pytest.mark.parametrize("name", ["", "has space", "x" * 81])
    def test_invalid_name_rejected(self, memory_service: InMemoryQueueService, name):
        """Test names outside the remote naming rules are rejected."""
        with pytest.raises(RemoteQueueError):
            memory_service.create_queue(name)

    def test_recreate_blocked_during_cooldown(
        self,
        memory_service: InMemoryQueueService,
        fake_clock: FakeClock,
        queue_id: str,
    ):
        """Test a deleted name cannot be reused until the cooldown passes."""
        memory_service.delete_queue(queue_id)

        with pytest.raises(QueueDeletedRecentlyError):
            memory_service.create_queue("env1_jobs")

        fake_clock.advance(60)

        assert memory_service.create_queue("env1_jobs") == queue_id

    def test_deleted_queue_does_not_exist(
        self,
        memory_service: InMemoryQueueService,
        queue_id: str,
    ):
        """Test operations on a deleted queue fail."""
        memory_service.delete_queue(queue_id)

        with pytest.raises(QueueDoesNotExistError):
            memory_service.send_message(queue_id, "body")


class TestMessages:
    """Tests for send, receive, visibility and delete."""

    def test_receive_empty(self, memory_service: InMemoryQueueService, queue_id: str):
        """Test an empty queue returns no messages without waiting."""
        assert memory_service.receive_message(queue_id) == []

    def test_receive_hides_message(self, memory_service: InMemoryQueueService, queue_id: str):
        """Test a received message is invisible until its lease expires."""
        message_id = memory_service.send_message(queue_id, "body")

        received = memory_service.receive_message(queue_id, visibility_timeout=30)

        assert [m.message_id for m in received] == [message_id]
        assert received[0].body == "body"
        assert received[0].receipt_handle
        assert memory_service.receive_message(queue_id) == []

    def test_expired_lease_redelivers_with_new_handle(
        self,
        memory_service: InMemoryQueueService,
        fake_clock: FakeClock,
        queue_id: str,
    ):
        """Test redelivery after lease expiry invalidates the old handle."""
        memory_service.send_message(queue_id, "body")
        first = memory_service.receive_message(queue_id, visibility_timeout=30)[0]

        fake_clock.advance(30)
        second = memory_service.receive_message(queue_id, visibility_timeout=30)[0]

        assert second.message_id == first.message_id
        assert second.receipt_handle != first.receipt_handle
        assert second.attributes["ApproximateReceiveCount"] == "2"
        with pytest.raises(ReceiptHandleInvalidError):
            memory_service.delete_message(queue_id, first.receipt_handle)
        assert memory_service.delete_message(queue_id, second.receipt_handle) is True

    def test_delete_after_lease_expiry_rejected(
        self,
        memory_service: InMemoryQueueService,
        fake_clock: FakeClock,
        queue_id: str,
    ):
        """Test a handle stops working once its lease has expired."""
        memory_service.send_message(queue_id, "body")
        message = memory_service.receive_message(queue_id, visibility_timeout=5)[0]

        fake_clock.advance(6)

        with pytest.raises(ReceiptHandleInvalidError):
            memory_service.delete_message(queue_id, message.receipt_handle)

    def test_visibility_zero_releases(
        self,
        memory_service: InMemoryQueueService,
        queue_id: str,
    ):
        """Test visibility 0 makes the message immediately available."""
        memory_service.send_message(queue_id, "body")
        message = memory_service.receive_message(queue_id, visibility_timeout=30)[0]

        assert memory_service.change_message_visibility(queue_id, message.receipt_handle, 0)

        assert len(memory_service.receive_message(queue_id)) == 1

    def test_visibility_extension(
        self,
        memory_service: InMemoryQueueService,
        fake_clock: FakeClock,
        queue_id: str,
    ):
        """Test extending a lease keeps the message hidden longer."""
        memory_service.send_message(queue_id, "body")
        message = memory_service.receive_message(queue_id, visibility_timeout=10)[0]

        fake_clock.advance(5)
        memory_service.change_message_visibility(queue_id, message.receipt_handle, 60)
        fake_clock.advance(10)

        assert memory_service.receive_message(queue_id) == []

    def test_fifo_delivery_order(self, memory_service: InMemoryQueueService, queue_id: str):
        """Test messages are delivered in send order."""
        for body in ("a", "b", "c"):
            memory_service.send_message(queue_id, body)

        received = memory_service.receive_message(queue_id, max_messages=10)

        assert [m.body for m in received] == ["a", "b", "c"]

    @pytest.mark.parametrize("body", ["", "x" * (256 * 1024 + 1)])
    def test_body_limits(self, memory_service: InMemoryQueueService, queue_id: str, body):
        """Test empty and oversized bodies are rejected."""
        with pytest.raises(RemoteQueueError):
            memory_service.send_message(queue_id, body)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_messages": 0},
            {"max_messages": 11},
            {"wait_time_seconds": 21},
            {"visibility_timeout": -1},
            {"visibility_timeout": 43_201},
        ],
    )
    def test_receive_parameter_bounds(
        self,
        memory_service: InMemoryQueueService,
        queue_id: str,
        kwargs,
    ):
        """Test receive parameters outside the remote limits are rejected."""
        with pytest.raises(RemoteQueueError):
            memory_service.receive_message(queue_id, **kwargs)


class TestAttributes:
    """Tests for queue attributes."""

    def test_counts(self, memory_service: InMemoryQueueService, queue_id: str):
        """Test visible and in-flight counts."""
        for body in ("a", "b", "c"):
            memory_service.send_message(queue_id, body)
        memory_service.receive_message(queue_id, visibility_timeout=30)

        attributes = memory_service.get_queue_attributes(queue_id, ["All"])

        assert attributes == {
            "ApproximateNumberOfMessages": "2",
            "ApproximateNumberOfMessagesNotVisible": "1",
        }

    def test_requested_attributes_only(
        self,
        memory_service: InMemoryQueueService,
        queue_id: str,
    ):
        """Test only requested attributes are returned."""
        attributes = memory_service.get_queue_attributes(
            queue_id, ["ApproximateNumberOfMessages", "Policy"]
        )

        assert attributes == {"ApproximateNumberOfMessages": "0"}


class TestLongPoll:
    """Tests for long polling against the real clock."""

    def test_long_poll_wakes_on_send(self):
        """Test a waiting receive returns as soon as a message arrives."""
        service = InMemoryQueueService()
        queue_id = service.create_queue("jobs")
        timer = threading.Timer(0.1, service.send_message, args=(queue_id, "late"))

        started = time.monotonic()
        timer.start()
        try:
            received = service.receive_message(queue_id, wait_time_seconds=5)
        finally:
            timer.cancel()

        assert [m.body for m in received] == ["late"]
        assert time.monotonic() - started < 5

    def test_long_poll_times_out_empty(self):
        """Test a long poll on an empty queue returns nothing after the wait."""
        service = InMemoryQueueService()
        queue_id = service.create_queue("jobs")

        started = time.monotonic()
        received = service.receive_message(queue_id, wait_time_seconds=1)

        assert received == []
        assert time.monotonic() - started >= 1
