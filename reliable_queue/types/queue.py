"""
Queue-related type definitions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reliable_queue.constants import MAX_WAIT_TIME_SECONDS


@dataclass
class QueueItem:
    """
    A claimed delivery of a queued message.

    receipt_handle identifies this specific delivery and is required to
    release, extend or delete it. item_id is the message id assigned on
    enqueue; it is shared by every redelivery of the same message.
    receive_count is how many times the message has been delivered,
    including this delivery.
    """

    payload: Any
    receipt_handle: str
    item_id: str | None = None
    receive_count: int = 1


@dataclass(frozen=True)
class QueueIdentity:
    """
    Identity of a provisioned remote queue.
    Immutable for the lifetime of the queue handle.
    """

    logical_name: str
    remote_id: str
    name_prefix: str = ""


@dataclass(frozen=True)
class RemoteMessage:
    """A single message as returned by a receive call."""

    body: str
    receipt_handle: str | None
    message_id: str | None
    attributes: dict[str, str] = field(default_factory=dict)


class ClaimPolicy(BaseModel):
    """
    Lease and long-poll policy applied to claims.

    Invariant: the wait time used by a claim never exceeds the lease used by
    that same claim, so a lease cannot run out before the receive returns.
    """

    model_config = ConfigDict(frozen=True)

    claim_timeout_seconds: int = Field(ge=0)
    wait_time_seconds: int = Field(default=0, ge=0, le=MAX_WAIT_TIME_SECONDS)

    def effective_lease(self, lease_seconds: int = 0) -> int:
        """Lease for a claim: the requested one, or the policy default."""
        if lease_seconds < 0:
            raise ValueError(f"lease_seconds must be non-negative, got {lease_seconds}")
        return lease_seconds or self.claim_timeout_seconds

    def effective_wait(self, lease_seconds: int = 0) -> int:
        """Long-poll duration for a claim, capped at its effective lease."""
        return min(self.wait_time_seconds, self.effective_lease(lease_seconds))


@dataclass
class ItemContext:
    """
    Context passed to item handlers during processing.
    Contains the claimed item and its lease details.
    """

    item_id: str
    queue_name: str
    payload: Any
    lease_seconds: int
    claimed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def job_type(self) -> str | None:
        """Handler key carried by mapping payloads."""
        if isinstance(self.payload, dict):
            return self.payload.get("job_type")
        return None

    @property
    def lease_expires_at(self) -> datetime:
        """When the remote lease on this delivery runs out."""
        return self.claimed_at + timedelta(seconds=self.lease_seconds)

    @property
    def time_remaining_seconds(self) -> float:
        """Get remaining time on the lease in seconds."""
        remaining = (self.lease_expires_at - datetime.now(timezone.utc)).total_seconds()
        return max(0.0, remaining)


class HandlerResult(BaseModel):
    """
    Result of item processing.
    Returned by item handlers; success decides delete versus release.
    A failure that is not retryable is held back instead of released.
    """

    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None
    retryable: bool = True
