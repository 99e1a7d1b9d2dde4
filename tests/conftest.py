from __future__ import annotations
import asyncio
import json
import random

import pytest

from abiviews.domain.errors import QueueError, WarehouseError
from abiviews.domain.models import CandidateRow, ReceivedMessage

TOKEN = "0x6b175474e89094c44da98b954eedeac495271d0f"

ERC20_ABI = [
    {"type": "constructor", "inputs": [{"name": "supply", "type": "uint256"}]},
    {"type": "event", "name": "Transfer", "anonymous": False, "inputs": [
        {"name": "from", "type": "address", "indexed": True},
        {"name": "to", "type": "address", "indexed": True},
        {"name": "value", "type": "uint256", "indexed": False},
    ]},
    {"type": "event", "name": "Approval", "anonymous": False, "inputs": [
        {"name": "owner", "type": "address", "indexed": True},
        {"name": "spender", "type": "address", "indexed": True},
        {"name": "value", "type": "uint256", "indexed": False},
    ]},
    {"type": "function", "name": "transfer", "stateMutability": "nonpayable", "inputs": [
        {"name": "to", "type": "address"},
        {"name": "amount", "type": "uint256"},
    ], "outputs": [{"name": "", "type": "bool"}]},
    {"type": "function", "name": "approve", "stateMutability": "nonpayable", "inputs": [
        {"name": "spender", "type": "address"},
        {"name": "amount", "type": "uint256"},
    ], "outputs": [{"name": "", "type": "bool"}]},
    {"type": "function", "name": "balanceOf", "stateMutability": "view", "inputs": [
        {"name": "account", "type": "address"},
    ], "outputs": [{"name": "", "type": "uint256"}]},
]


def address(i: int) -> str:
    return "0x" + f"{i:040x}"


def erc20_row(addr: str) -> CandidateRow:
    return CandidateRow(contract_address=addr, abi_json=json.dumps(ERC20_ABI).encode())


class FakeQueue:
    """In-memory queue; ``fail_for`` holds substrings of bodies whose send fails."""

    def __init__(self, *, fail_for: set[str] = frozenset(), fail_delete: set[str] = frozenset(),
                 jitter: float = 0.0, inbox: list[ReceivedMessage] | None = None) -> None:
        self.fail_for = set(fail_for)
        self.fail_delete = set(fail_delete)
        self.jitter = jitter
        self.inbox = list(inbox or [])
        self.sent: list[str] = []
        self.deleted: list[str] = []

    async def send(self, body: str) -> str:
        if self.jitter:
            await asyncio.sleep(random.random() * self.jitter)
        if any(s in body for s in self.fail_for):
            raise QueueError("send refused")
        self.sent.append(body)
        return f"msg-{len(self.sent)}"

    async def delete(self, receipt_handle: str) -> None:
        if receipt_handle in self.fail_delete:
            raise QueueError("delete refused")
        self.deleted.append(receipt_handle)

    async def receive(self, max_messages: int = 10, wait_seconds: int = 20) -> list[ReceivedMessage]:
        out, self.inbox = self.inbox[:max_messages], self.inbox[max_messages:]
        return out


class FakeWarehouse:
    """Checks the declared statement count the way Snowflake's multi-statement API does."""

    def __init__(self, *, rows: list[CandidateRow] | None = None, fail_for: set[str] = frozenset(),
                 jitter: float = 0.0) -> None:
        self.rows = list(rows or [])
        self.fail_for = set(fail_for)
        self.jitter = jitter
        self.executed: list[tuple[str, int, str]] = []
        self.closed = False

    async def candidate_contracts(self, *, min_log_count: int, limit: int) -> list[CandidateRow]:
        return self.rows[:limit] if limit > 0 else list(self.rows)

    async def execute_multi(self, sql: str, num_statements: int, request_id: str) -> str:
        if self.jitter:
            await asyncio.sleep(random.random() * self.jitter)
        if any(s in sql for s in self.fail_for):
            raise WarehouseError("SQL compilation error")
        actual = sql.count("CREATE OR REPLACE VIEW")
        if actual != num_statements:
            raise WarehouseError(f"Actual statement count {actual} did not match the desired statement count {num_statements}")
        self.executed.append((sql, num_statements, request_id))
        return f"query-{len(self.executed)}"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def erc20_abi() -> list[dict]:
    return json.loads(json.dumps(ERC20_ABI))
