# abiviews/ports/queue.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import ReceivedMessage


class MessageQueue(Protocol):
    """Port for the transport between producer and consumer (e.g., SQS)."""

    async def send(self, body: str) -> str:
        """Enqueue one message body; return the queue's message id."""

    async def delete(self, receipt_handle: str) -> None:
        """Acknowledge a received message so it is not redelivered."""

    async def receive(self, max_messages: int = 10, wait_seconds: int = 20) -> list[ReceivedMessage]:
        """Return up to ``max_messages`` messages (may be empty)."""
