"""
SQS publisher for chat message events.

Sends CHAT_MESSAGE_CREATED events to the bot worker queue. boto3 is
blocking, so each send runs in a worker thread.

Dependencies: boto3
System role: Event publishing boundary for the bot worker
"""

import asyncio
import json
import logging
from typing import Any, Protocol

import boto3

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    """Anything that can publish a JSON-serialisable event."""

    async def publish(self, payload: dict[str, Any]) -> str | None: ...


class SQSEventPublisher:
    """SQS client for bot worker events."""

    def __init__(self, queue_url: str | None, region: str = "ap-southeast-2") -> None:
        """
        Initialize SQS publisher.

        Args:
            queue_url: Target queue URL; publishing is skipped when empty
            region: AWS region of the queue
        """
        self._queue_url = queue_url
        self._region = region
        self._sqs_client = boto3.client("sqs", region_name=region) if queue_url else None

    async def publish(self, payload: dict[str, Any]) -> str | None:
        """
        Send an event to the queue.

        Args:
            payload: Event body, serialised as JSON

        Returns:
            SQS MessageId, or None when no queue is configured

        Raises:
            ClientError: If SQS rejects the message
        """
        if self._sqs_client is None:
            logger.warning(
                "SQS queue URL not configured, skipping event publish",
                extra={"event_type": payload.get("eventType")},
            )
            return None

        response = await asyncio.to_thread(
            self._sqs_client.send_message,
            QueueUrl=self._queue_url,
            MessageBody=json.dumps(payload, default=str),
        )
        message_id = response.get("MessageId")
        logger.info(
            "Published chat event",
            extra={"event_type": payload.get("eventType"), "sqs_message_id": message_id},
        )
        return message_id
