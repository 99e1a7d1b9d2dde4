"""Decode-view statement generation.

One ``CREATE OR REPLACE VIEW`` per event and per method; a contract's statements are
concatenated into a single multi-statement text. Statements are independent of each
other, so their order does not matter and re-running a batch is idempotent.
"""
from __future__ import annotations

from dataclasses import dataclass

from .casts import column_expr, quote_ident
from .errors import CodegenError
from .models import AbiEvent, AbiMethod, Column, QueueMessage, Resolution, Skipped
from .validation import view_name


DEFAULT_LOGS_TABLE = "ETHEREUM.RAW.LOGS"
DEFAULT_TRANSACTIONS_TABLE = "ETHEREUM.RAW.TRANSACTIONS"


@dataclass(slots=True, frozen=True)
class SqlTargets:
    """Raw tables the views read from."""
    logs_table: str = DEFAULT_LOGS_TABLE
    transactions_table: str = DEFAULT_TRANSACTIONS_TABLE


EVENT_BASE_COLUMNS = ("block_number", "block_timestamp", "transaction_hash", "log_index", "contract_address")
METHOD_BASE_COLUMNS = ("block_number", "block_timestamp", "hash AS transaction_hash", "from_address", "to_address")

EVENT_TEMPLATE = """CREATE OR REPLACE VIEW {view} AS
SELECT
{columns}
FROM {table}
WHERE contract_address = {address}
  AND STARTSWITH(topics, {sig_hash});
"""

METHOD_TEMPLATE = """CREATE OR REPLACE VIEW {view} AS
SELECT
{columns}
FROM {table}
WHERE to_address = {address}
  AND STARTSWITH(input, {selector});
"""


@dataclass(slots=True, frozen=True)
class Statement:
    view_name: str
    sql: str


@dataclass(slots=True, frozen=True)
class ContractBatch:
    contract_address: str
    statements: tuple[Statement, ...] = ()

    @property
    def sql(self) -> str: return "".join(s.sql for s in self.statements)

    @property
    def number_of_statements(self) -> int: return len(self.statements)

    def to_message(self) -> QueueMessage:
        return QueueMessage(
            contract_address=self.contract_address,
            sql_statements=self.sql,
            number_of_statements=self.number_of_statements,
        )


def _lit(s: str) -> str:
    return "'" + s.replace("'", "''") + "'"

def _select_list(base: tuple[str, ...], columns: tuple[Column, ...]) -> str:
    items = list(base) + [f"{column_expr(c)} AS {quote_ident(c.name)}" for c in columns]
    return ",\n".join(f"    {i}" for i in items)


def render_event(event: AbiEvent, targets: SqlTargets) -> Statement:
    name = view_name(event)
    try:
        sql = EVENT_TEMPLATE.format(
            view=name,
            columns=_select_list(EVENT_BASE_COLUMNS, event.columns),
            table=targets.logs_table,
            address=_lit(event.contract_address),
            sig_hash=_lit(event.sig_hash),
        )
    except (KeyError, IndexError, ValueError, TypeError) as e:
        raise CodegenError(event.contract_address, f"rendering event {event.name!r} failed: {e}") from e
    return Statement(name, sql)


def render_method(method: AbiMethod, targets: SqlTargets) -> Statement:
    name = view_name(method)
    try:
        sql = METHOD_TEMPLATE.format(
            view=name,
            columns=_select_list(METHOD_BASE_COLUMNS, method.columns),
            table=targets.transactions_table,
            address=_lit(method.contract_address),
            selector=_lit(method.selector),
        )
    except (KeyError, IndexError, ValueError, TypeError) as e:
        raise CodegenError(method.contract_address, f"rendering method {method.name!r} failed: {e}") from e
    return Statement(name, sql)


def build_batch(resolution: Resolution, targets: SqlTargets | None = None) -> ContractBatch:
    """Events first, then methods. A skipped contract yields an empty batch."""
    contract = resolution.contract
    if isinstance(resolution, Skipped):
        return ContractBatch(contract.contract_address)
    targets = targets or SqlTargets()
    stmts = [render_event(e, targets) for e in contract.events]
    stmts += [render_method(m, targets) for m in contract.methods]
    return ContractBatch(contract.contract_address, tuple(stmts))
