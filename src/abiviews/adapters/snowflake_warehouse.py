from __future__ import annotations
import asyncio
import logging
import threading
from typing import Any

import snowflake.connector
from snowflake.connector.errors import Error as SnowflakeError

from ..domain.errors import WarehouseError
from ..domain.models import CandidateRow
from ..ports.warehouse import Warehouse

log = logging.getLogger(__name__)

CANDIDATE_QUERY = """SELECT c.contract_address, c.abi
FROM {contracts_table} c
JOIN (
    SELECT contract_address, COUNT(*) AS log_count
    FROM {logs_table}
    GROUP BY contract_address
) l ON l.contract_address = c.contract_address
WHERE c.abi IS NOT NULL
  AND l.log_count >= %(min_log_count)s"""


class SnowflakeWarehouse(Warehouse):
    """Snowflake-backed warehouse; one shared connection, one cursor per call."""

    def __init__(
        self,
        conn_params: dict[str, Any],
        *,
        contracts_table: str,
        logs_table: str,
        connection: Any = None,
    ) -> None:
        self.conn_params = {k: v for k, v in conn_params.items() if v}
        self.contracts_table = contracts_table
        self.logs_table = logs_table
        self._conn = connection
        self._lock = threading.Lock()

    def _connection(self) -> Any:
        with self._lock:
            if self._conn is None:
                log.info(
                    "connecting to snowflake user=%s role=%s database=%s schema=%s warehouse=%s",
                    *(self.conn_params.get(k) for k in ("user", "role", "database", "schema", "warehouse")),
                )
                self._conn = snowflake.connector.connect(**self.conn_params)
            return self._conn

    def candidate_query(self, limit: int) -> str:
        q = CANDIDATE_QUERY.format(contracts_table=self.contracts_table, logs_table=self.logs_table)
        return q + ("\nLIMIT %(limit)s" if limit > 0 else "")

    def _fetch_candidates(self, min_log_count: int, limit: int) -> list[CandidateRow]:
        query = self.candidate_query(limit)
        log.info("getting contracts to process with query:\n%s", query)
        with self._connection().cursor() as cur:
            cur.execute(query, {"min_log_count": min_log_count, "limit": limit})
            return [CandidateRow(contract_address=addr, abi_json=abi) for addr, abi in cur.fetchall()]

    def _execute_multi(self, sql: str, num_statements: int, request_id: str) -> str:
        with self._connection().cursor() as cur:
            cur.execute(sql, num_statements=num_statements, _statement_params={"QUERY_TAG": request_id})
            query_id = cur.sfqid or ""
            # later statements of a multi-statement request report errors on nextset()
            while cur.nextset():
                pass
            return query_id

    async def candidate_contracts(self, *, min_log_count: int, limit: int) -> list[CandidateRow]:
        try:
            return await asyncio.to_thread(self._fetch_candidates, min_log_count, limit)
        except SnowflakeError as e:
            raise WarehouseError(f"candidate query failed: {e}") from e

    async def execute_multi(self, sql: str, num_statements: int, request_id: str) -> str:
        try:
            return await asyncio.to_thread(self._execute_multi, sql, num_statements, request_id)
        except SnowflakeError as e:
            raise WarehouseError(f"multi-statement query {request_id} failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
