"""
Item handler registry and dispatch.

Item handlers must be idempotent - delivery is at-least-once, so the same
item may be processed more than once if a lease expires before deletion.
"""

import logging
from typing import Callable

from reliable_queue.types.queue import HandlerResult, ItemContext

logger = logging.getLogger(__name__)

# Type alias for item handler functions
ItemHandler = Callable[[ItemContext], HandlerResult]

# Handler registry
_handlers: dict[str, ItemHandler] = {}


def register_handler(job_type: str) -> Callable[[ItemHandler], ItemHandler]:
    """
    Decorator to register an item handler.

    Args:
        job_type: The ``job_type`` value of payloads this handler processes.

    Returns:
        Decorator function.

    Example:
        @register_handler("resize")
        def handle_resize(context: ItemContext) -> HandlerResult:
            ...
    """
    def decorator(handler: ItemHandler) -> ItemHandler:
        _handlers[job_type] = handler
        logger.info(f"Registered handler for job type: {job_type}")
        return handler
    return decorator


def get_handler(job_type: str) -> ItemHandler | None:
    """
    Get the handler for a job type.

    Args:
        job_type: The job type.

    Returns:
        The handler function or None if not found.
    """
    return _handlers.get(job_type)


def list_handlers() -> list[str]:
    """List all registered job types."""
    return list(_handlers.keys())


def execute_item(context: ItemContext) -> HandlerResult:
    """
    Process an item using the appropriate handler.

    Args:
        context: The item context.

    Returns:
        HandlerResult from the handler. Payloads without a usable job type
        give a result that is not retryable.
    """
    job_type = context.job_type
    if job_type is None:
        return HandlerResult(
            success=False,
            error="Payload has no 'job_type'",
            retryable=False,
        )

    handler = get_handler(job_type)

    if handler is None:
        logger.error(
            f"No handler for job type: {job_type}",
            extra={"item_id": context.item_id}
        )
        return HandlerResult(
            success=False,
            error=f"No handler registered for job type: {job_type}",
            retryable=False,
        )

    try:
        return handler(context)
    except Exception as e:
        logger.exception(
            "Handler raised exception",
            extra={"item_id": context.item_id, "error": str(e)}
        )
        return HandlerResult(
            success=False,
            error=f"Handler exception: {str(e)}",
        )
