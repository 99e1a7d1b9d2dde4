from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable

from ..domain.errors import CodegenError, DispatchError, PipelineError, QueueError, SerializationError
from ..domain.layout import parse_abi, resolve_contract
from ..domain.message import SQS_MAX_MESSAGE_BYTES, encode_message
from ..domain.models import CandidateRow, DispatchOutcome, Skipped
from ..domain.sqlgen import SqlTargets, build_batch
from ..domain.validation import SNOWFLAKE_IDENTIFIER_MAX_LENGTH, validate_contract
from ..ports.queue import MessageQueue
from ..ports.storage import SqlSink
from .accumulator import Accumulator

log = logging.getLogger(__name__)

PROGRESS_EVERY = 100


@dataclass(slots=True, frozen=True)
class DispatchConfig:
    namespace: str = "ETH"
    targets: SqlTargets = SqlTargets()
    dry_run: bool = False
    max_identifier_length: int = SNOWFLAKE_IDENTIFIER_MAX_LENGTH
    max_message_bytes: int = SQS_MAX_MESSAGE_BYTES


async def process_contract(
    row: CandidateRow,
    acc: Accumulator,
    *,
    queue: MessageQueue | None,
    cfg: DispatchConfig,
    sql_sink: SqlSink | None = None,
) -> None:
    addr = row.contract_address
    entries = parse_abi(row.abi_json, addr)
    resolution = validate_contract(resolve_contract(addr, entries, cfg.namespace), cfg.max_identifier_length)
    if isinstance(resolution, Skipped):
        acc.count("skipped")
        return

    batch = build_batch(resolution, cfg.targets)
    n = batch.number_of_statements
    acc.count("statements_generated", n)
    if n == 0:
        log.info("contract_address %s has no events or methods. Skipping...", addr)
        return

    body = encode_message(batch.to_message(), cfg.max_message_bytes)

    if sql_sink is not None:
        try:
            await sql_sink.write_batch(batch)
        except OSError as e:
            raise SerializationError(addr, f"writing sql files failed: {e}") from e

    if cfg.dry_run:
        return

    if queue is None:
        raise ValueError("a queue is required unless running in dry-run mode")
    acc.count("send_attempts")
    try:
        await queue.send(body)
    except QueueError as e:
        raise DispatchError(addr, str(e)) from e
    acc.count("send_successes")


async def dispatch_contracts(
    rows: Iterable[CandidateRow],
    *,
    queue: MessageQueue | None,
    cfg: DispatchConfig = DispatchConfig(),
    sql_sink: SqlSink | None = None,
) -> DispatchOutcome:
    """Generate and enqueue decode views for every candidate contract.

    One task per contract; per-contract failures are recorded and never stop
    siblings. All tasks are joined before the outcome is built. An exception that
    is not a PipelineError is a bug and is re-raised once everything has finished.
    """
    if queue is None and not cfg.dry_run:
        raise ValueError("a queue is required unless running in dry-run mode")
    if cfg.dry_run:
        log.info("running in dry-run mode. View create statements will not be submitted")

    acc = Accumulator().start()

    async def run_one(row: CandidateRow) -> None:
        try:
            await process_contract(row, acc, queue=queue, cfg=cfg, sql_sink=sql_sink)
        except CodegenError as e:
            log.exception("codegen failed for contract_address=%s", row.contract_address)
            acc.fail(e)
        except PipelineError as e:
            acc.fail(e)

    tasks: list[asyncio.Task[None]] = []
    for i, row in enumerate(rows, 1):
        acc.count("contracts_seen")
        tasks.append(asyncio.create_task(run_one(row)))
        if i % PROGRESS_EVERY == 0:
            snap = await acc.snapshot()
            attempted, ok = snap.counts["send_attempts"], snap.counts["send_successes"]
            pct = f"{ok / attempted * 100:0.1f}%" if attempted else "n/a"
            log.info("%d contract addresses processed so far, %d of %d messages submitted (%s)", i, ok, attempted, pct)

    log.info("waiting for all %d contracts to finish processing...", len(tasks))
    results = await asyncio.gather(*tasks, return_exceptions=True)
    tally = await acc.close()

    outcome = DispatchOutcome(
        contracts_seen=tally.counts["contracts_seen"],
        statements_generated=tally.counts["statements_generated"],
        skipped=tally.counts["skipped"],
        send_attempts=tally.counts["send_attempts"],
        send_successes=tally.counts["send_successes"],
        failures=tally.failures,
    )
    if outcome.failures:
        log.error("processing finished with %d errors", len(outcome.failures))
        for f in outcome.failures:
            log.error("ERROR: contract_address=%s error=%s", f.key, f.error.message)
    log.info("%d create view statements generated", outcome.statements_generated)

    unexpected = [r for r in results if isinstance(r, BaseException)]
    if unexpected:
        log.error("%d contract tasks crashed unexpectedly", len(unexpected))
        raise unexpected[0]
    return outcome
