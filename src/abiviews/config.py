from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from .domain.message import SQS_MAX_MESSAGE_BYTES
from .domain.sqlgen import DEFAULT_LOGS_TABLE, DEFAULT_TRANSACTIONS_TABLE, SqlTargets
from .domain.validation import SNOWFLAKE_IDENTIFIER_MAX_LENGTH


DEFAULT_CONTRACTS_TABLE = "ETHEREUM.RAW.CONTRACTS"


def _first(env: Mapping[str, str], *names: str, default: str = "") -> str:
    for n in names:
        v = env.get(n)
        if v:
            return v
    return default


@dataclass(frozen=True)
class SnowflakeConfig:
    account: str = ""
    user: str = ""
    password: str = ""
    database: str = ""
    schema: str = ""
    warehouse: str = ""
    role: str = ""

    def conn_params(self) -> dict[str, Any]:
        return {
            "account": self.account, "user": self.user, "password": self.password,
            "database": self.database, "schema": self.schema,
            "warehouse": self.warehouse, "role": self.role,
        }


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from the environment (Lambda uses the LAMBDA_* names)."""

    snowflake: SnowflakeConfig = field(default_factory=SnowflakeConfig)
    namespace: str = "ETH"
    queue_url: str = ""
    region: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    contracts_table: str = DEFAULT_CONTRACTS_TABLE
    logs_table: str = DEFAULT_LOGS_TABLE
    transactions_table: str = DEFAULT_TRANSACTIONS_TABLE
    max_identifier_length: int = SNOWFLAKE_IDENTIFIER_MAX_LENGTH
    max_message_bytes: int = SQS_MAX_MESSAGE_BYTES

    @property
    def targets(self) -> SqlTargets:
        return SqlTargets(logs_table=self.logs_table, transactions_table=self.transactions_table)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            snowflake=SnowflakeConfig(
                account=_first(env, "SF_ACCOUNT"),
                user=_first(env, "SF_USER"),
                password=_first(env, "SF_PASSWORD"),
                database=_first(env, "SF_DATABASE"),
                schema=_first(env, "SF_SCHEMA"),
                warehouse=_first(env, "SF_WAREHOUSE"),
                role=_first(env, "SF_ROLE"),
            ),
            namespace=_first(env, "NAMESPACE", default="ETH"),
            queue_url=_first(env, "SQS_QUEUE_URL"),
            region=_first(env, "AWS_REGION", "LAMBDA_REGION"),
            access_key_id=_first(env, "AWS_ACCESS_KEY_ID", "LAMBDA_ACCESS_KEY_ID"),
            secret_access_key=_first(env, "AWS_SECRET_ACCESS_KEY", "LAMBDA_SECRET_ACCESS_KEY"),
            contracts_table=_first(env, "CONTRACTS_TABLE", default=DEFAULT_CONTRACTS_TABLE),
            logs_table=_first(env, "LOGS_TABLE", default=DEFAULT_LOGS_TABLE),
            transactions_table=_first(env, "TRANSACTIONS_TABLE", default=DEFAULT_TRANSACTIONS_TABLE),
            max_identifier_length=int(_first(env, "MAX_IDENTIFIER_LENGTH", default=str(SNOWFLAKE_IDENTIFIER_MAX_LENGTH))),
            max_message_bytes=int(_first(env, "MAX_MESSAGE_BYTES", default=str(SQS_MAX_MESSAGE_BYTES))),
        )
