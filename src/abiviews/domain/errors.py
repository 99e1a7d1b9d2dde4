"""Per-item failure taxonomy.

Every error carries the key of the item it belongs to (a contract address on the
producer side, a receipt handle on the consumer side) so that failures collected
from concurrent tasks stay attributable.
"""
from __future__ import annotations


class PipelineError(Exception):
    """Expected per-item failure; recorded and never propagated to siblings."""

    kind = "pipeline"

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind}[{self.key}]: {self.message}"


class SourceRowError(PipelineError):
    """Malformed ABI or candidate row."""
    kind = "source_row"


class MessageDecodeError(SourceRowError):
    """Queue message body could not be decoded."""
    kind = "message_decode"


class CodegenError(PipelineError):
    """Statement rendering failed; a programming defect, never retried."""
    kind = "codegen"


class SerializationError(PipelineError):
    kind = "serialization"


class DispatchError(PipelineError):
    """Queue send failed. Nothing reached the warehouse."""
    kind = "dispatch"


class ExecutionError(PipelineError):
    """Warehouse multi-statement execution failed; the message stays on the queue."""
    kind = "execution"

    def __init__(self, key: str, message: str, *, contract_address: str = "") -> None:
        super().__init__(key, message)
        self.contract_address = contract_address


class AckError(PipelineError):
    """Deleting an already executed message failed. Logged only."""
    kind = "ack"


class QueueError(RuntimeError):
    """Transport-level queue failure raised by queue adapters."""


class WarehouseError(RuntimeError):
    """Warehouse driver failure raised by warehouse adapters."""


class BatchFailedError(RuntimeError):
    """Raised by entry points when a consumer invocation recorded failures."""

    def __init__(self, failures: int, total: int) -> None:
        super().__init__(f"{failures} of {total} messages failed")
        self.failures = failures
        self.total = total
