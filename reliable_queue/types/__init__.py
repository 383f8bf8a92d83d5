"""
Type definitions for the reliable queue.
Contains the data model shared by the queue, the provisioner and the worker.
"""

from reliable_queue.types.queue import (
    ClaimPolicy,
    HandlerResult,
    ItemContext,
    QueueIdentity,
    QueueItem,
    RemoteMessage,
)

__all__ = [
    # Queue types
    "QueueItem",
    "QueueIdentity",
    "ClaimPolicy",
    "RemoteMessage",
    # Worker types
    "ItemContext",
    "HandlerResult",
]
