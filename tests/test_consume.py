import uuid

from abiviews.application.consume import consume_messages
from abiviews.domain.errors import ExecutionError, MessageDecodeError
from abiviews.domain.message import encode_message
from abiviews.domain.models import QueueMessage, ReceivedMessage
from conftest import FakeQueue, FakeWarehouse, address

VIEW = "CREATE OR REPLACE VIEW v{i} AS SELECT 1;\n"


def _received(i: int, n: int = 2, declared: int | None = None) -> ReceivedMessage:
    sql = "".join(VIEW.format(i=f"{i}_{k}") for k in range(n))
    body = encode_message(QueueMessage(address(i), sql, n if declared is None else declared))
    return ReceivedMessage(message_id=f"m{i}", receipt_handle=f"rh-{i}", body=body)


async def test_batch_is_executed_and_acknowledged():
    msgs = [_received(i) for i in range(8)]
    queue, wh = FakeQueue(), FakeWarehouse(jitter=0.005)

    outcome = await consume_messages(msgs, queue=queue, warehouse=wh)

    assert outcome.ok
    assert outcome.messages_seen == outcome.executed == outcome.acknowledged == 8
    assert sorted(queue.deleted) == sorted(m.receipt_handle for m in msgs)
    request_ids = [r for _, _, r in wh.executed]
    assert len(set(request_ids)) == 8
    assert all(uuid.UUID(r) for r in request_ids)


async def test_zero_statement_message_is_deleted_without_execution():
    queue, wh = FakeQueue(), FakeWarehouse()

    outcome = await consume_messages([_received(1, n=0)], queue=queue, warehouse=wh)

    assert outcome.ok
    assert wh.executed == []
    assert queue.deleted == ["rh-1"]
    assert outcome.empty == 1


async def test_undecodable_message_is_left_on_the_queue():
    bad = ReceivedMessage(message_id="m", receipt_handle="rh-bad", body="{nope")
    queue, wh = FakeQueue(), FakeWarehouse()

    outcome = await consume_messages([bad, _received(1)], queue=queue, warehouse=wh)

    assert not outcome.ok
    assert [(f.key, type(f.error)) for f in outcome.failures] == [("rh-bad", MessageDecodeError)]
    assert queue.deleted == ["rh-1"]


async def test_execution_failure_is_not_acknowledged():
    msgs = [_received(i) for i in range(4)]
    queue, wh = FakeQueue(), FakeWarehouse(fail_for={"v2_0"}, jitter=0.005)

    outcome = await consume_messages(msgs, queue=queue, warehouse=wh)

    assert outcome.executed == 3
    assert sorted(queue.deleted) == ["rh-0", "rh-1", "rh-3"]
    [failure] = outcome.failures
    assert failure.key == "rh-2"
    assert isinstance(failure.error, ExecutionError)
    assert failure.error.contract_address == address(2)


async def test_declared_count_mismatch_is_an_execution_failure():
    queue, wh = FakeQueue(), FakeWarehouse()

    outcome = await consume_messages([_received(1, n=3, declared=2)], queue=queue, warehouse=wh)

    assert wh.executed == []
    assert queue.deleted == []
    assert isinstance(outcome.failures[0].error, ExecutionError)


async def test_failed_acknowledgment_is_logged_not_failed():
    queue, wh = FakeQueue(fail_delete={"rh-1"}), FakeWarehouse()

    outcome = await consume_messages([_received(1), _received(2)], queue=queue, warehouse=wh)

    assert outcome.ok
    assert outcome.executed == 2
    assert outcome.acknowledged == 1
    assert outcome.ack_failures == 1


async def test_dry_run_touches_nothing():
    queue, wh = FakeQueue(), FakeWarehouse()

    outcome = await consume_messages([_received(1), _received(2, n=0)], queue=queue, warehouse=wh, dry_run=True)

    assert outcome.ok
    assert wh.executed == [] and queue.deleted == []
