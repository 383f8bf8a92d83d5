"""
Amazon SQS backend.

Thin adapter from the RemoteQueueService protocol onto a boto3 SQS client.
Errors raised by botocore propagate unchanged, except the "queue deleted
recently" code which is translated so provisioning can retry it.
"""

import logging
from typing import Any, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from reliable_queue.config import Settings, get_settings
from reliable_queue.constants import (
    ATTR_APPROXIMATE_RECEIVE_COUNT,
    MAX_WAIT_TIME_SECONDS,
    SQS_QUEUE_DELETED_RECENTLY_CODES,
)
from reliable_queue.errors import QueueDeletedRecentlyError
from reliable_queue.types.queue import RemoteMessage

logger = logging.getLogger(__name__)

# Read timeout must outlast the longest long poll
_READ_TIMEOUT_SECONDS = MAX_WAIT_TIME_SECONDS + 10


def create_sqs_client(settings: Settings | None = None) -> Any:
    """
    Create a boto3 SQS client from settings.

    Credentials fall back to the default boto3 chain when not configured.
    An API version of "latest" selects the newest model bundled with botocore.

    Args:
        settings: Optional settings. Uses cached settings if not provided.

    Returns:
        A boto3 SQS client.
    """
    settings = settings or get_settings()

    client_kwargs: dict[str, Any] = {
        "service_name": "sqs",
        "region_name": settings.aws_region,
        "config": Config(
            read_timeout=_READ_TIMEOUT_SECONDS,
            connect_timeout=5,
            retries={"max_attempts": 3, "mode": "standard"},
        ),
    }

    if settings.aws_api_version and settings.aws_api_version != "latest":
        client_kwargs["api_version"] = settings.aws_api_version

    if settings.aws_endpoint_url:
        client_kwargs["endpoint_url"] = settings.aws_endpoint_url

    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = (
            settings.aws_secret_access_key.get_secret_value()
        )

    return boto3.client(**client_kwargs)


def _is_success(response: Any) -> bool:
    """Check that a response has the shape of a successful SQS call."""
    if not isinstance(response, dict):
        return False
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
    return 200 <= status < 300


class SqsQueueService:
    """
    RemoteQueueService backed by Amazon SQS.

    Works with AWS SQS and SQS-compatible endpoints (ElasticMQ, LocalStack).
    """

    name = "sqs"

    def __init__(self, client: Any = None, settings: Settings | None = None):
        """
        Initialize the service.

        Args:
            client: Optional pre-built boto3 SQS client.
            settings: Settings used to build a client when none is given.
        """
        self._client = client if client is not None else create_sqs_client(settings)

    @property
    def client(self) -> Any:
        """The underlying boto3 client."""
        return self._client

    def create_queue(self, queue_name: str) -> str:
        try:
            response = self._client.create_queue(QueueName=queue_name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in SQS_QUEUE_DELETED_RECENTLY_CODES:
                raise QueueDeletedRecentlyError(
                    f"Queue {queue_name!r} was deleted recently", code=code
                ) from e
            raise

        queue_url = response["QueueUrl"]
        logger.debug(
            "Resolved SQS queue",
            extra={"queue_name": queue_name, "queue_url": queue_url},
        )
        return queue_url

    def delete_queue(self, queue_id: str) -> None:
        self._client.delete_queue(QueueUrl=queue_id)

    def send_message(self, queue_id: str, body: str) -> str | None:
        response = self._client.send_message(QueueUrl=queue_id, MessageBody=body)
        return response.get("MessageId") or None

    def receive_message(
        self,
        queue_id: str,
        max_messages: int = 1,
        visibility_timeout: int | None = None,
        wait_time_seconds: int = 0,
    ) -> list[RemoteMessage]:
        params: dict[str, Any] = {
            "QueueUrl": queue_id,
            "MaxNumberOfMessages": max_messages,
            "WaitTimeSeconds": wait_time_seconds,
            "AttributeNames": [ATTR_APPROXIMATE_RECEIVE_COUNT],
        }
        if visibility_timeout is not None:
            params["VisibilityTimeout"] = visibility_timeout

        response = self._client.receive_message(**params)

        return [
            RemoteMessage(
                body=message.get("Body", ""),
                receipt_handle=message.get("ReceiptHandle"),
                message_id=message.get("MessageId"),
                attributes=message.get("Attributes", {}),
            )
            for message in response.get("Messages") or []
        ]

    def change_message_visibility(
        self,
        queue_id: str,
        receipt_handle: str,
        visibility_timeout: int,
    ) -> bool:
        response = self._client.change_message_visibility(
            QueueUrl=queue_id,
            ReceiptHandle=receipt_handle,
            VisibilityTimeout=visibility_timeout,
        )
        return _is_success(response)

    def delete_message(self, queue_id: str, receipt_handle: str) -> bool:
        response = self._client.delete_message(
            QueueUrl=queue_id,
            ReceiptHandle=receipt_handle,
        )
        return _is_success(response)

    def get_queue_attributes(
        self,
        queue_id: str,
        attribute_names: Sequence[str],
    ) -> dict[str, str]:
        response = self._client.get_queue_attributes(
            QueueUrl=queue_id,
            AttributeNames=list(attribute_names),
        )
        return response.get("Attributes") or {}
