"""
QueryExecutor: run validated SQL locally or through the query proxy.

- Local mode: one scoped MySQL connection per statement
- Cloud mode: forward the raw SQL to the proxy first; if that fails for any
  reason, decompose the statement and send the structured form instead
- Both modes append LIMIT <max_rows> when the text has no "limit" in it
- Results are normalized into plain row dicts; metadata only on request

Every public method is total: failures come back as success=False results,
never as exceptions.
"""

import logging
import math
import re
import time

from schoolchat.agents.decomposer import QueryDecomposer
from schoolchat.config import Settings, get_settings
from schoolchat.connectors.base import BaseConnector
from schoolchat.connectors.mysql import MySQLConnector, column_info_from_row
from schoolchat.connectors.query_proxy import QueryProxyClient
from schoolchat.models.errors import ExecutionError
from schoolchat.models.query import (
    ConnectionCheck,
    DecomposedQuery,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    TableListResult,
    TableSchemaResult,
    normalize_rows,
)
from schoolchat.profiling.columns import column_names

logger = logging.getLogger(__name__)

TABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_TRAILING_TERMINATOR = re.compile(r";?\s*$")


def apply_row_limit(sql: str, max_rows: int | None, terminate: bool = True) -> str:
    """
    Append LIMIT when the query text has none.

    The check is a case-insensitive substring test, not clause-aware: a
    "limit" inside a string literal or subquery also suppresses injection.
    """
    if not max_rows or "limit" in sql.lower():
        return sql
    suffix = f" LIMIT {max_rows};" if terminate else f" LIMIT {max_rows}"
    return _TRAILING_TERMINATOR.sub(suffix, sql, count=1)


class QueryExecutor:
    """
    Executes SELECT statements in local or cloud mode.

    Args:
        mode: "local" (direct MySQL) or "cloud" (HTTP query proxy)
        connector: Local database connector, required in local mode
        proxy: Query proxy client, required in cloud mode
        decomposer: Used by the cloud fallback path
        health_table: Table probed by test_connection in cloud mode
    """

    def __init__(
        self,
        mode: str = "local",
        connector: BaseConnector | None = None,
        proxy: QueryProxyClient | None = None,
        decomposer: QueryDecomposer | None = None,
        health_table: str = "catchments",
    ) -> None:
        if mode not in ("local", "cloud"):
            raise ValueError(f"Unknown execution mode: {mode}")
        self.mode = mode
        self.connector = connector
        self.proxy = proxy
        self.decomposer = decomposer or QueryDecomposer()
        self.health_table = health_table

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "QueryExecutor":
        settings = settings or get_settings()
        connector = None
        proxy = None
        if settings.database.url is not None:
            connector = MySQLConnector.from_url(
                str(settings.database.url), timeout=settings.database.timeout_seconds
            )
        if settings.query_proxy.base_url:
            proxy = QueryProxyClient.from_settings(settings.query_proxy)
        return cls(
            mode=settings.database.mode,
            connector=connector,
            proxy=proxy,
            health_table=settings.query_proxy.health_table,
        )

    @property
    def environment(self) -> str:
        return self.mode

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    async def execute(self, query: str, options: QueryOptions | None = None) -> QueryResult:
        """
        Run one query.

        Returns:
            QueryResult. On any failure: success=False, empty data, row_count 0
            and the underlying error message verbatim.
        """
        options = options or QueryOptions()
        start = time.perf_counter()
        try:
            if not isinstance(query, str) or not query.strip():
                raise ExecutionError("Query must be a non-empty string")
            if self.mode == "local":
                raw_rows = await self._execute_local(query, options)
            else:
                raw_rows = await self._execute_remote(query, options)
            rows = normalize_rows(raw_rows)
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error(f"Query execution error ({self.mode}): {message}")
            return QueryResult.failure(message)

        elapsed_ms = (time.perf_counter() - start) * 1000
        metadata = None
        if options.return_metadata:
            metadata = QueryMetadata(
                row_count=len(rows),
                columns=column_names(rows),
                execution_time_ms=elapsed_ms,
                environment=self.environment,
            )
        logger.info(
            f"Query returned {len(rows)} rows in {elapsed_ms:.1f}ms",
            extra={"mode": self.mode, "row_count": len(rows)},
        )
        return QueryResult.ok(rows, metadata)

    async def _execute_local(self, query: str, options: QueryOptions) -> list[dict]:
        connector = self._require_connector()
        final_query = apply_row_limit(query, options.max_rows, terminate=True)
        timeout_seconds = max(1, math.ceil(options.timeout_ms / 1000))
        result = await connector.execute(final_query, timeout=timeout_seconds)
        return result.rows

    async def _execute_remote(self, query: str, options: QueryOptions) -> list[dict]:
        proxy = self._require_proxy()
        final_query = apply_row_limit(query.strip(), options.max_rows, terminate=False)
        timeout_seconds = options.timeout_ms / 1000
        try:
            return await proxy.run_query(final_query, timeout=timeout_seconds)
        except Exception as exc:
            # Any raw-forward failure gets the structured retry
            logger.warning(f"Raw proxy query failed, falling back to structured query: {exc}")
        decomposed = self.decomposer.decompose_or_raise(final_query)
        return await proxy.run_structured(decomposed, timeout=timeout_seconds)

    def _require_connector(self) -> BaseConnector:
        if self.connector is None:
            raise ExecutionError("Local database is not configured (set DATABASE_URL)")
        return self.connector

    def _require_proxy(self) -> QueryProxyClient:
        if self.proxy is None:
            raise ExecutionError("Query proxy is not configured (set QUERY_PROXY_BASE_URL)")
        return self.proxy

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def test_connection(self) -> ConnectionCheck:
        try:
            if self.mode == "local":
                await self._require_connector().ping()
                return ConnectionCheck(success=True, message="Local database connection successful")
            await self._require_proxy().run_structured(
                DecomposedQuery(table=self.health_table, select_list="1", clauses=["LIMIT 1"])
            )
            return ConnectionCheck(success=True, message="Cloud database connection successful")
        except Exception as exc:
            logger.warning(f"Connection test failed: {exc}")
            return ConnectionCheck(success=False, message=f"Connection failed: {exc}")

    async def list_tables(self) -> TableListResult:
        try:
            if self.mode == "local":
                tables = await self._require_connector().list_tables()
            else:
                rows = await self._require_proxy().run_structured(
                    DecomposedQuery(
                        table="information_schema.tables",
                        select_list="table_name",
                        clauses=["WHERE table_schema = DATABASE()"],
                    )
                )
                tables = [
                    str(value)
                    for row in rows
                    for key, value in row.items()
                    if key.lower() == "table_name" and value is not None
                ]
            return TableListResult(success=True, tables=tables)
        except Exception as exc:
            logger.error(f"Error getting available tables: {exc}")
            return TableListResult(success=False, error=str(exc))

    async def get_table_schema(self, table_name: str) -> TableSchemaResult:
        if not isinstance(table_name, str) or not TABLE_NAME_RE.match(table_name):
            return TableSchemaResult(
                success=False, table=str(table_name), error=f"Invalid table name: {table_name}"
            )
        try:
            if self.mode == "local":
                columns = await self._require_connector().describe_table(table_name)
            else:
                rows = await self._require_proxy().run_structured(
                    DecomposedQuery(
                        table="information_schema.columns",
                        select_list="column_name, data_type, is_nullable",
                        clauses=[
                            f"WHERE table_name = '{table_name}'",
                            "AND table_schema = DATABASE()",
                        ],
                    )
                )
                columns = [column_info_from_row(row) for row in rows]
            return TableSchemaResult(success=True, table=table_name, table_schema=columns)
        except Exception as exc:
            logger.error(f"Error getting table schema for {table_name}: {exc}")
            return TableSchemaResult(success=False, table=table_name, error=str(exc))
