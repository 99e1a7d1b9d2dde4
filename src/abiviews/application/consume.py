from __future__ import annotations
import asyncio
import logging
import uuid
from typing import Iterable

from ..domain.errors import AckError, ExecutionError, PipelineError, QueueError, WarehouseError
from ..domain.message import decode_message
from ..domain.models import ConsumeOutcome, ReceivedMessage
from ..ports.queue import MessageQueue
from ..ports.warehouse import Warehouse
from .accumulator import Accumulator

log = logging.getLogger(__name__)


async def _acknowledge(queue: MessageQueue, receipt_handle: str, acc: Accumulator) -> None:
    # the warehouse side already succeeded; a failed delete only means a harmless redelivery
    try:
        await queue.delete(receipt_handle)
    except QueueError as e:
        log.warning("%s", AckError(receipt_handle, str(e)))
        acc.count("ack_failures")
        return
    acc.count("acknowledged")


async def handle_message(
    msg: ReceivedMessage,
    acc: Accumulator,
    *,
    queue: MessageQueue,
    warehouse: Warehouse,
    dry_run: bool = False,
) -> None:
    key = msg.receipt_handle
    message = decode_message(msg.body, key)

    if dry_run:
        log.info("dry-run: contract_address=%s statements=%d not executed",
                 message.contract_address, message.number_of_statements)
        return

    if message.number_of_statements == 0:
        acc.count("empty")
        await _acknowledge(queue, key, acc)
        return

    request_id = str(uuid.uuid4())
    log.info("submitting query with request ID %s for contract_address=%s statements=%d",
             request_id, message.contract_address, message.number_of_statements)
    try:
        query_id = await warehouse.execute_multi(
            message.sql_statements, message.number_of_statements, request_id,
        )
    except WarehouseError as e:
        raise ExecutionError(
            key,
            f"error with multistatement query for contract address {message.contract_address}: {e}",
            contract_address=message.contract_address,
        ) from e
    acc.count("executed")

    log.info("request ID %s (query ID %s) completed. Deleting message receipt handle %s",
             request_id, query_id, key)
    await _acknowledge(queue, key, acc)


async def consume_messages(
    messages: Iterable[ReceivedMessage],
    *,
    queue: MessageQueue,
    warehouse: Warehouse,
    dry_run: bool = False,
) -> ConsumeOutcome:
    """Execute one received batch; failed messages stay on the queue for redelivery."""
    acc = Accumulator().start()

    async def run_one(msg: ReceivedMessage) -> None:
        try:
            await handle_message(msg, acc, queue=queue, warehouse=warehouse, dry_run=dry_run)
        except PipelineError as e:
            acc.fail(e)

    tasks: list[asyncio.Task[None]] = []
    for msg in messages:
        acc.count("messages_seen")
        tasks.append(asyncio.create_task(run_one(msg)))

    results = await asyncio.gather(*tasks, return_exceptions=True)
    tally = await acc.close()
    log.info("finished processing %d queue messages", len(tasks))

    outcome = ConsumeOutcome(
        messages_seen=tally.counts["messages_seen"],
        executed=tally.counts["executed"],
        acknowledged=tally.counts["acknowledged"],
        empty=tally.counts["empty"],
        ack_failures=tally.counts["ack_failures"],
        failures=tally.failures,
    )
    if outcome.failures:
        log.error("errors handling queue messages")
        for f in outcome.failures:
            log.error("ERROR: receipt_handle=%s error=%s", f.key, f.error.message)

    unexpected = [r for r in results if isinstance(r, BaseException)]
    if unexpected:
        raise unexpected[0]
    return outcome
