"""
Lambda entry point for the consumer.

Configured as the target of an SQS event source mapping. Every record of the
delivered batch is attempted exactly once per invocation; records that fail stay
on the queue and come back after the visibility timeout. Any failure makes the
invocation fail so it shows up in Lambda error metrics/alerts.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..adapters.sqs_boto3 import records_from_lambda_event
from ..application.consume import consume_messages
from ..config import Settings
from ..domain.errors import BatchFailedError
from .cli import build_queue, build_warehouse
from .logs import setup_plain_logging

log = logging.getLogger(__name__)


def handler(event: dict[str, Any], context: Any) -> dict[str, int]:
    setup_plain_logging()
    settings = Settings.from_env()
    messages = records_from_lambda_event(event)
    log.info("received %d SQS records", len(messages))

    queue = build_queue(settings)
    warehouse = build_warehouse(settings)
    try:
        outcome = asyncio.run(consume_messages(messages, queue=queue, warehouse=warehouse))
    finally:
        warehouse.close()

    if not outcome.ok:
        raise BatchFailedError(len(outcome.failures), outcome.messages_seen)

    return {
        "messages": outcome.messages_seen,
        "executed": outcome.executed,
        "acknowledged": outcome.acknowledged,
        "empty": outcome.empty,
        "ack_failures": outcome.ack_failures,
    }
