"""RemoteQueueService protocol definition."""

from typing import Protocol, Sequence, runtime_checkable

from reliable_queue.types.queue import RemoteMessage


@runtime_checkable
class RemoteQueueService(Protocol):
    """
    Protocol for hosted queue services.

    A service exposes raw send/receive/change-visibility/delete primitives.
    All coordination between claimants (hiding a leased message from everyone
    else) happens on the service side through visibility timeouts.
    """

    name: str

    def create_queue(self, queue_name: str) -> str:
        """
        Create a queue, or look up an existing one with the same name.

        Args:
            queue_name: The remote-visible queue name.

        Returns:
            The remote queue id (URL-like handle).

        Raises:
            QueueDeletedRecentlyError: If the name was deleted too recently.
        """
        ...

    def delete_queue(self, queue_id: str) -> None:
        """Delete a queue and every message in it."""
        ...

    def send_message(self, queue_id: str, body: str) -> str | None:
        """
        Send a message.

        Returns:
            The assigned message id, or None if the service returned none.
        """
        ...

    def receive_message(
        self,
        queue_id: str,
        max_messages: int = 1,
        visibility_timeout: int | None = None,
        wait_time_seconds: int = 0,
    ) -> list[RemoteMessage]:
        """
        Receive up to max_messages messages.

        Args:
            queue_id: The remote queue id.
            max_messages: Maximum number of messages to return.
            visibility_timeout: Seconds the received messages stay hidden.
            wait_time_seconds: Long-poll duration; 0 returns immediately.

        Returns:
            Received messages, possibly empty.
        """
        ...

    def change_message_visibility(
        self,
        queue_id: str,
        receipt_handle: str,
        visibility_timeout: int,
    ) -> bool:
        """
        Change the visibility timeout of an in-flight delivery.

        Returns:
            True if the service acknowledged the change.
        """
        ...

    def delete_message(self, queue_id: str, receipt_handle: str) -> bool:
        """
        Permanently delete the message behind an in-flight delivery.

        Returns:
            True if the service acknowledged the deletion.
        """
        ...

    def get_queue_attributes(
        self,
        queue_id: str,
        attribute_names: Sequence[str],
    ) -> dict[str, str]:
        """Get queue attributes as a name -> value mapping."""
        ...
