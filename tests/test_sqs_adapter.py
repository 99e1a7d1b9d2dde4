import boto3
import pytest
from botocore.stub import Stubber

from abiviews.adapters.sqs_boto3 import SqsQueue, queue_name, records_from_lambda_event
from abiviews.domain.errors import QueueError
from abiviews.domain.models import ReceivedMessage

URL = "https://sqs.us-east-1.amazonaws.com/123456789012/abi-views"


@pytest.fixture
def stubbed():
    client = boto3.client("sqs", region_name="us-east-1",
                          aws_access_key_id="test", aws_secret_access_key="test")
    with Stubber(client) as stub:
        yield SqsQueue(URL, client=client), stub
        stub.assert_no_pending_responses()


async def test_send(stubbed):
    queue, stub = stubbed
    stub.add_response("send_message", {"MessageId": "mid-1"}, {"QueueUrl": URL, "MessageBody": "hello"})
    assert await queue.send("hello") == "mid-1"


async def test_send_failure_becomes_queue_error(stubbed):
    queue, stub = stubbed
    stub.add_client_error("send_message", service_error_code="AWS.SimpleQueueService.NonExistentQueue")
    with pytest.raises(QueueError):
        await queue.send("hello")


async def test_delete(stubbed):
    queue, stub = stubbed
    stub.add_response("delete_message", {}, {"QueueUrl": URL, "ReceiptHandle": "rh"})
    await queue.delete("rh")


async def test_delete_failure_becomes_queue_error(stubbed):
    queue, stub = stubbed
    stub.add_client_error("delete_message", service_error_code="ReceiptHandleIsInvalid")
    with pytest.raises(QueueError):
        await queue.delete("rh")


async def test_receive_clamps_to_sqs_limits(stubbed):
    queue, stub = stubbed
    stub.add_response(
        "receive_message",
        {"Messages": [{"MessageId": "m1", "ReceiptHandle": "rh1", "Body": "{}"}]},
        {"QueueUrl": URL, "MaxNumberOfMessages": 10, "WaitTimeSeconds": 20},
    )
    assert await queue.receive(50, 60) == [ReceivedMessage("m1", "rh1", "{}")]


async def test_receive_empty(stubbed):
    queue, stub = stubbed
    stub.add_response("receive_message", {}, {"QueueUrl": URL, "MaxNumberOfMessages": 1, "WaitTimeSeconds": 0})
    assert await queue.receive(1, 0) == []


def test_queue_url_required():
    with pytest.raises(ValueError):
        SqsQueue("", client=object())


def test_helpers():
    assert queue_name(URL) == "abi-views"
    event = {"Records": [{"messageId": "m", "receiptHandle": "rh", "body": "b", "eventSource": "aws:sqs"}]}
    assert records_from_lambda_event(event) == [ReceivedMessage("m", "rh", "b")]
    assert records_from_lambda_event({}) == []
