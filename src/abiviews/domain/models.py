from __future__ import annotations
from dataclasses import dataclass, field
from .errors import PipelineError
from .value_types import Address, ColumnSource, SigHash, Selector

WORD_WIDTH = 64  # hex chars in one 32-byte ABI word


@dataclass(slots=True, frozen=True)
class Column:
    source: ColumnSource
    name: str
    abi_type: str
    indexed: bool
    start: int                  # 1-based offset into the source hex string
    width: int = WORD_WIDTH


@dataclass(slots=True, frozen=True)
class AbiEvent:
    name: str                   # view-facing name, unique within the contract
    raw_name: str               # name as declared, used in the signature
    contract_address: Address
    namespace: str
    signature: str
    sig_hash: SigHash
    columns: tuple[Column, ...]
    anonymous: bool = False

    @property
    def indexed_columns(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if c.indexed)

    @property
    def data_columns(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if not c.indexed)


@dataclass(slots=True, frozen=True)
class AbiMethod:
    name: str
    raw_name: str
    contract_address: Address
    namespace: str
    signature: str
    selector: Selector
    columns: tuple[Column, ...]


@dataclass(slots=True, frozen=True)
class ContractAbi:
    contract_address: Address
    namespace: str
    events: tuple[AbiEvent, ...] = ()
    methods: tuple[AbiMethod, ...] = ()

    @property
    def member_count(self) -> int: return len(self.events) + len(self.methods)


@dataclass(slots=True, frozen=True)
class Resolved:
    contract: ContractAbi


@dataclass(slots=True, frozen=True)
class Skipped:
    contract: ContractAbi
    reason: str


Resolution = Resolved | Skipped


@dataclass(slots=True, frozen=True)
class CandidateRow:
    contract_address: str
    abi_json: bytes | str


@dataclass(slots=True, frozen=True)
class QueueMessage:
    contract_address: str
    sql_statements: str
    number_of_statements: int


@dataclass(slots=True, frozen=True)
class ReceivedMessage:
    message_id: str
    receipt_handle: str
    body: str


@dataclass(slots=True, frozen=True)
class ItemFailure:
    key: str
    error: PipelineError


@dataclass(slots=True)
class DispatchOutcome:
    contracts_seen: int = 0
    statements_generated: int = 0
    skipped: int = 0
    send_attempts: int = 0
    send_successes: int = 0
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool: return not self.failures


@dataclass(slots=True)
class ConsumeOutcome:
    messages_seen: int = 0
    executed: int = 0
    acknowledged: int = 0
    empty: int = 0
    ack_failures: int = 0
    failures: list[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool: return not self.failures
