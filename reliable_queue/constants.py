"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class ClaimOutcome(StrEnum):
    """Result of a single claim request."""

    HIT = "hit"
    EMPTY = "empty"
    INVALID = "invalid"


# Remote service limits
QUEUE_NAME_MAX_LENGTH = 80
MAX_WAIT_TIME_SECONDS = 20
MAX_VISIBILITY_TIMEOUT_SECONDS = 43_200  # 12 hours
MAX_MESSAGE_BODY_BYTES = 256 * 1024

# A deleted queue name cannot be reused for this long
QUEUE_RECREATE_COOLDOWN_SECONDS = 60

# Queue name prefix separator
QUEUE_NAME_SEPARATOR = "_"

# Queue attributes
ATTR_APPROXIMATE_NUMBER_OF_MESSAGES = "ApproximateNumberOfMessages"
ATTR_APPROXIMATE_NUMBER_OF_MESSAGES_NOT_VISIBLE = "ApproximateNumberOfMessagesNotVisible"
ATTR_APPROXIMATE_RECEIVE_COUNT = "ApproximateReceiveCount"

# SQS error codes (query and JSON protocol spellings)
SQS_QUEUE_DELETED_RECENTLY_CODES = frozenset(
    {
        "AWS.SimpleQueueService.QueueDeletedRecently",
        "QueueDeletedRecently",
    }
)

# Metrics names
METRIC_QUEUE_DEPTH = "queue_depth"
METRIC_ITEMS_ENQUEUED = "queue_items_enqueued_total"
METRIC_ITEMS_CLAIMED = "queue_items_claimed_total"
METRIC_ITEMS_RELEASED = "queue_items_released_total"
METRIC_ITEMS_DELETED = "queue_items_deleted_total"
METRIC_LEASES_EXTENDED = "queue_leases_extended_total"
METRIC_CLAIM_WAIT = "queue_claim_wait_seconds"
METRIC_PROVISION_RETRIES = "queue_provision_retries_total"

# Trace span names
SPAN_PROVISION_QUEUE = "provision_queue"
SPAN_ENQUEUE = "enqueue"
SPAN_CLAIM = "claim"
SPAN_RELEASE = "release"
SPAN_EXTEND = "extend_lease"
SPAN_DELETE = "delete_item"
SPAN_COUNT = "approximate_count"
SPAN_PROCESS_ITEM = "process_item"
