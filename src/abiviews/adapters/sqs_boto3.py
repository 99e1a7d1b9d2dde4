from __future__ import annotations
import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..domain.errors import QueueError
from ..domain.models import ReceivedMessage
from ..ports.queue import MessageQueue

log = logging.getLogger(__name__)

SQS_MAX_BATCH = 10
SQS_MAX_WAIT_S = 20


def queue_name(queue_url: str) -> str:
    return queue_url.rstrip("/").split("/")[-1]


class SqsQueue(MessageQueue):
    def __init__(
        self,
        queue_url: str,
        *,
        region: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client: Any = None,
    ) -> None:
        if not queue_url:
            raise ValueError("SQS queue URL is required")
        self.queue_url = queue_url
        # credentials fall back to boto3's default chain when not given
        self.client = client or boto3.client(
            "sqs",
            region_name=region or None,
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
        )

    async def send(self, body: str) -> str:
        try:
            resp = await asyncio.to_thread(
                self.client.send_message, QueueUrl=self.queue_url, MessageBody=body,
            )
        except (BotoCoreError, ClientError) as e:
            raise QueueError(f"SQS send_message to {queue_name(self.queue_url)} failed: {e}") from e
        return resp.get("MessageId", "")

    async def delete(self, receipt_handle: str) -> None:
        try:
            await asyncio.to_thread(
                self.client.delete_message, QueueUrl=self.queue_url, ReceiptHandle=receipt_handle,
            )
        except (BotoCoreError, ClientError) as e:
            raise QueueError(f"SQS delete_message from {queue_name(self.queue_url)} failed: {e}") from e
        log.debug("deleted message with receipt handle %s", receipt_handle)

    async def receive(self, max_messages: int = SQS_MAX_BATCH, wait_seconds: int = SQS_MAX_WAIT_S) -> list[ReceivedMessage]:
        try:
            resp = await asyncio.to_thread(
                self.client.receive_message,
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=max(1, min(max_messages, SQS_MAX_BATCH)),
                WaitTimeSeconds=max(0, min(wait_seconds, SQS_MAX_WAIT_S)),
            )
        except (BotoCoreError, ClientError) as e:
            raise QueueError(f"SQS receive_message from {queue_name(self.queue_url)} failed: {e}") from e
        return [
            ReceivedMessage(message_id=m["MessageId"], receipt_handle=m["ReceiptHandle"], body=m["Body"])
            for m in resp.get("Messages", [])
        ]


def records_from_lambda_event(event: dict[str, Any]) -> list[ReceivedMessage]:
    """Messages delivered to a Lambda function by an SQS event source mapping."""
    return [
        ReceivedMessage(message_id=r["messageId"], receipt_handle=r["receiptHandle"], body=r["body"])
        for r in event.get("Records", [])
    ]
