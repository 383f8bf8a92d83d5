"""
Queue backend selection.

The backend is picked from configuration once per process; there is no
mutable global to swap at runtime.
"""

import logging
from collections.abc import Callable
from functools import lru_cache

from reliable_queue.config import Settings, get_settings
from reliable_queue.provisioner import QueueProvisioner
from reliable_queue.queue import ReliableQueue
from reliable_queue.remote.memory import InMemoryQueueService
from reliable_queue.remote.protocol import RemoteQueueService
from reliable_queue.remote.sqs import SqsQueueService

logger = logging.getLogger(__name__)

_backends: dict[str, Callable[[Settings], RemoteQueueService]] = {
    "sqs": lambda settings: SqsQueueService(settings=settings),
    "memory": lambda settings: InMemoryQueueService(),
}


def list_backends() -> list[str]:
    """List all available queue backends."""
    return list(_backends.keys())


def get_queue_service(settings: Settings | None = None) -> RemoteQueueService:
    """
    Build the remote queue service selected by ``queue_default``.

    Args:
        settings: Optional settings. Uses cached settings if not provided.

    Returns:
        A new RemoteQueueService.

    Raises:
        ValueError: If the configured backend is unknown.
    """
    settings = settings or get_settings()
    factory = _backends.get(settings.queue_default)
    if factory is None:
        raise ValueError(
            f"Unknown queue backend {settings.queue_default!r}; "
            f"expected one of {list_backends()}"
        )
    return factory(settings)


@lru_cache
def get_provisioner() -> QueueProvisioner:
    """Get the process-wide provisioner for the configured backend."""
    settings = get_settings()
    service = get_queue_service(settings)
    logger.info("Selected queue backend", extra={"backend": service.name})
    return QueueProvisioner(service, settings)


def provision_queue(name: str, settings: Settings | None = None) -> ReliableQueue:
    """
    Provision a queue by logical name.

    Args:
        name: The logical queue name.
        settings: Optional explicit settings. When given, a dedicated service
            and provisioner are built for them instead of the process-wide one.

    Returns:
        A ready ReliableQueue.
    """
    if settings is None:
        return get_provisioner().provision(name)
    return QueueProvisioner(get_queue_service(settings), settings).provision(name)
