"""
Remote queue services.
Contains the service protocol and its SQS and in-memory implementations.
"""

from reliable_queue.remote.memory import InMemoryQueueService
from reliable_queue.remote.protocol import RemoteQueueService
from reliable_queue.remote.sqs import SqsQueueService, create_sqs_client

__all__ = [
    "RemoteQueueService",
    "SqsQueueService",
    "InMemoryQueueService",
    "create_sqs_client",
]
