"""
Unit tests for logging helpers.
"""

import structlog

from reliable_queue.config import Settings
from reliable_queue.observability.logging import QueueDefaults, bind_context, item_log_context


class TestQueueDefaults:
    """Tests for the QueueDefaults processor."""

    def test_adds_service_backend_and_prefix(self, test_settings: Settings):
        """Test process-wide queue fields are stamped on events."""
        event = QueueDefaults(test_settings)(None, "info", {"event": "Claimed item"})

        assert event == {
            "event": "Claimed item",
            "service": "reliable-queue",
            "backend": "memory",
            "queue_prefix": "env1",
        }

    def test_event_fields_take_precedence(self, test_settings: Settings):
        """Test fields already on the event are not overwritten."""
        event = QueueDefaults(test_settings)(None, "info", {"event": "x", "backend": "sqs"})

        assert event["backend"] == "sqs"

    def test_no_prefix_field_without_prefix(self, test_settings: Settings):
        """Test an empty prefix is left out."""
        settings = test_settings.model_copy(update={"queue_name_prefix": ""})

        assert "queue_prefix" not in QueueDefaults(settings).fields


class TestItemLogContext:
    """Tests for scoped item context."""

    def test_binds_and_restores(self):
        """Test item fields are bound inside and earlier context survives exit."""
        structlog.contextvars.clear_contextvars()
        bind_context(worker_id="w-1")

        with item_log_context("jobs", "m-1"):
            inside = structlog.contextvars.get_contextvars()

        outside = structlog.contextvars.get_contextvars()
        structlog.contextvars.clear_contextvars()

        assert inside == {"worker_id": "w-1", "queue": "jobs", "item_id": "m-1"}
        assert outside == {"worker_id": "w-1"}
