from __future__ import annotations
import json
from typing import Any

from .errors import MessageDecodeError, SerializationError
from .models import QueueMessage

SQS_MAX_MESSAGE_BYTES = 262_144

_FIELDS: dict[str, type] = {
    "contract_address": str,
    "sql_statements": str,
    "number_of_statements": int,
}


def encode_message(message: QueueMessage, max_bytes: int = SQS_MAX_MESSAGE_BYTES) -> str:
    try:
        body = json.dumps({
            "contract_address": message.contract_address,
            "sql_statements": message.sql_statements,
            "number_of_statements": message.number_of_statements,
        }, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(message.contract_address, f"error JSON serializing message: {e}") from e
    size = len(body.encode("utf-8"))
    if size > max_bytes:
        raise SerializationError(
            message.contract_address,
            f"message is {size} bytes, queue limit is {max_bytes} "
            f"({message.number_of_statements} statements)",
        )
    return body


def decode_message(body: str | bytes, key: str = "") -> QueueMessage:
    """Strict inverse of encode_message; ``key`` attributes errors (receipt handle)."""
    try:
        doc: Any = json.loads(body)
    except (TypeError, ValueError) as e:
        raise MessageDecodeError(key, f"error deserializing message body: {e}") from e
    if not isinstance(doc, dict):
        raise MessageDecodeError(key, f"message body must be a JSON object, got {type(doc).__name__}")
    for name, typ in _FIELDS.items():
        if name not in doc:
            raise MessageDecodeError(key, f"message body missing field {name!r}")
        v = doc[name]
        if not isinstance(v, typ) or isinstance(v, bool):
            raise MessageDecodeError(key, f"field {name!r} must be {typ.__name__}, got {type(v).__name__}")
    if doc["number_of_statements"] < 0:
        raise MessageDecodeError(key, "number_of_statements must be >= 0")
    return QueueMessage(
        contract_address=doc["contract_address"],
        sql_statements=doc["sql_statements"],
        number_of_statements=doc["number_of_statements"],
    )
