"""
Pytest configuration and shared fixtures.
"""

from collections.abc import Sequence
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from reliable_queue.config import Settings
from reliable_queue.observability.metrics import MetricsCollector
from reliable_queue.queue import ReliableQueue
from reliable_queue.remote.memory import InMemoryQueueService
from reliable_queue.types.queue import (
    ClaimPolicy,
    HandlerResult,
    ItemContext,
    QueueIdentity,
    RemoteMessage,
)
from reliable_queue.worker.handlers import _handlers, register_handler

TEST_QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/test_jobs"


class RecordingQueueService:
    """
    RemoteQueueService test double.

    Records every call and answers from scripted responses.
    """

    name = "recording"

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.create_errors: list[Exception] = []
        self.messages: list[RemoteMessage] = []
        self.send_result: str | None = "msg-1"
        self.attributes: dict[str, str] = {}
        self.ack_result = True

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        """Get the recorded arguments of every call to one operation."""
        return [kwargs for name, kwargs in self.calls if name == operation]

    def create_queue(self, queue_name: str) -> str:
        self.calls.append(("create_queue", {"queue_name": queue_name}))
        if self.create_errors:
            raise self.create_errors.pop(0)
        return f"https://sqs.test/{queue_name}"

    def delete_queue(self, queue_id: str) -> None:
        self.calls.append(("delete_queue", {"queue_id": queue_id}))

    def send_message(self, queue_id: str, body: str) -> str | None:
        self.calls.append(("send_message", {"queue_id": queue_id, "body": body}))
        return self.send_result

    def receive_message(
        self,
        queue_id: str,
        max_messages: int = 1,
        visibility_timeout: int | None = None,
        wait_time_seconds: int = 0,
    ) -> list[RemoteMessage]:
        self.calls.append(
            (
                "receive_message",
                {
                    "queue_id": queue_id,
                    "max_messages": max_messages,
                    "visibility_timeout": visibility_timeout,
                    "wait_time_seconds": wait_time_seconds,
                },
            )
        )
        if not self.messages:
            return []
        return [self.messages.pop(0)]

    def change_message_visibility(
        self,
        queue_id: str,
        receipt_handle: str,
        visibility_timeout: int,
    ) -> bool:
        self.calls.append(
            (
                "change_message_visibility",
                {
                    "queue_id": queue_id,
                    "receipt_handle": receipt_handle,
                    "visibility_timeout": visibility_timeout,
                },
            )
        )
        return self.ack_result

    def delete_message(self, queue_id: str, receipt_handle: str) -> bool:
        self.calls.append(
            ("delete_message", {"queue_id": queue_id, "receipt_handle": receipt_handle})
        )
        return self.ack_result

    def get_queue_attributes(
        self,
        queue_id: str,
        attribute_names: Sequence[str],
    ) -> dict[str, str]:
        self.calls.append(
            (
                "get_queue_attributes",
                {"queue_id": queue_id, "attribute_names": list(attribute_names)},
            )
        )
        return self.attributes


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def handle_echo(context: ItemContext) -> HandlerResult:
    """Echo handler: returns the payload as output."""
    return HandlerResult(success=True, output={"echo": context.payload})


def handle_failing_job(context: ItemContext) -> HandlerResult:
    """Handler that always fails with a retryable error."""
    return HandlerResult(
        success=False,
        error=f"Intentional failure for item {context.item_id}",
    )


@pytest.fixture(autouse=True)
def item_handlers():
    """Register the echo and failing_job handlers for each test."""
    register_handler("echo")(handle_echo)
    register_handler("failing_job")(handle_failing_job)
    yield
    _handlers.pop("echo", None)
    _handlers.pop("failing_job", None)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        queue_default="memory",
        queue_codec="json",
        queue_name_prefix="env1",
        queue_claim_timeout_seconds=30,
        queue_wait_time_seconds=20,
        queue_recreate_backoff_seconds=60,
        queue_recreate_max_retries=None,
        log_level="DEBUG",
        log_format="console",
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    """Create a metrics collector on an isolated registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def recording_service() -> RecordingQueueService:
    """Create a recording remote service double."""
    return RecordingQueueService()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Create a manually advanced clock."""
    return FakeClock()


@pytest.fixture
def memory_service(fake_clock: FakeClock) -> InMemoryQueueService:
    """Create an in-memory service driven by the fake clock."""
    return InMemoryQueueService(clock=fake_clock)


@pytest.fixture
def recorded_queue(
    recording_service: RecordingQueueService,
    metrics: MetricsCollector,
) -> ReliableQueue:
    """Create a queue bound to the recording service."""
    return ReliableQueue(
        identity=QueueIdentity(logical_name="test_jobs", remote_id=TEST_QUEUE_URL),
        service=recording_service,
        policy=ClaimPolicy(claim_timeout_seconds=30, wait_time_seconds=20),
        metrics=metrics,
    )


@pytest.fixture
def sample_payload() -> dict[str, Any]:
    """Create a sample item payload."""
    return {"job": "resize", "id": 42}
