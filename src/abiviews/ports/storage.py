# abiviews/ports/storage.py
from __future__ import annotations

from typing import Protocol
from ..domain.sqlgen import ContractBatch


class SqlSink(Protocol):
    """Port for persisting generated statements outside the warehouse (e.g., .sql files)."""

    async def write_batch(self, batch: ContractBatch) -> list[str]:
        """Persist every statement of the batch; return the written locations."""
