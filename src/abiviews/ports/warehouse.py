# abiviews/ports/warehouse.py
from __future__ import annotations

from typing import Protocol
from ..domain.models import CandidateRow


class Warehouse(Protocol):
    """Port for the data warehouse holding raw logs, transactions and contract ABIs."""

    async def candidate_contracts(self, *, min_log_count: int, limit: int) -> list[CandidateRow]:
        """Return (contract_address, abi_json) rows to generate views for; limit 0 means no limit."""

    async def execute_multi(self, sql: str, num_statements: int, request_id: str) -> str:
        """Run a multi-statement text declaring its statement count; return the query id."""
