from __future__ import annotations
import asyncio
import os

from ..domain.sqlgen import ContractBatch
from ..ports.storage import SqlSink


class SqlFileSink(SqlSink):
    """Writes one ``<view_name>.sql`` file per statement under ``root_dir``."""

    def __init__(self, root_dir: str) -> None:
        self.root = root_dir
        os.makedirs(self.root, exist_ok=True)

    def _path(self, view_name: str) -> str:
        return os.path.join(self.root, f"{view_name}.sql")

    def _write(self, path: str, sql: str) -> None:
        tmp = path + ".tmp"
        with open(tmp, "w") as f:
            f.write(sql)
        os.replace(tmp, path)

    async def write_batch(self, batch: ContractBatch) -> list[str]:
        paths: list[str] = []
        for stmt in batch.statements:
            path = self._path(stmt.view_name)
            await asyncio.to_thread(self._write, path, stmt.sql)
            paths.append(path)
        return paths
