"""
Exception hierarchy for the reliable queue.

Empty outcomes (nothing to claim, zero backlog, an unacknowledged send) are
plain return values and never show up here.
"""


class QueueError(Exception):
    """Base exception for all reliable queue errors."""


class QueueProvisioningError(QueueError):
    """Raised when a queue could not be created or looked up."""


class QueueItemValidationError(QueueError, ValueError):
    """Raised when an item is missing an identifier required by an operation."""


class CodecError(QueueError):
    """Raised when a payload cannot be encoded or decoded."""


class RemoteQueueError(QueueError):
    """Raised when the remote queue service rejects a request."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class QueueDeletedRecentlyError(RemoteQueueError):
    """
    A queue with the same name was deleted too recently to be recreated.

    This is the only transient provisioning error: the remote service accepts
    the name again once its cooldown window has passed.
    """


class QueueDoesNotExistError(RemoteQueueError):
    """Raised when an operation targets an unknown queue."""


class ReceiptHandleInvalidError(RemoteQueueError):
    """Raised when a receipt handle no longer identifies an in-flight delivery."""
