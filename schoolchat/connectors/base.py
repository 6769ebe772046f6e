"""
Base Database Connector

Abstract base class for the local database connector. Provides a consistent
async interface for querying and introspecting the target database.

Connections are scoped per call: every operation acquires a connection,
runs exactly one statement and releases it, even on error. There is no
pooling.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from schoolchat.models.query import ColumnInfo

logger = logging.getLogger(__name__)


# ============================================================================
# Data Models
# ============================================================================


class StatementResult(BaseModel):
    """Raw rows returned by one statement."""

    rows: list[dict[str, Any]] = Field(..., description="Result rows as column -> value")
    row_count: int = Field(..., description="Number of rows returned")
    columns: list[str] = Field(..., description="Column names")
    execution_time_ms: float = Field(..., description="Query execution time in ms")


class ConnectorError(Exception):
    """Base exception for connector errors."""

    pass


class ConnectionError(ConnectorError):
    """Error establishing or managing database connection."""

    pass


class QueryError(ConnectorError):
    """Error executing database query."""

    pass


class SchemaError(ConnectorError):
    """Error introspecting database schema."""

    pass


# ============================================================================
# Base Connector
# ============================================================================


class BaseConnector(ABC):
    """
    Abstract base class for database connectors.

    Usage:
        connector = MySQLConnector(host="localhost", database="schools", ...)
        result = await connector.execute("SELECT * FROM schools LIMIT 5")
        print(f"Found {result.row_count} rows")
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        timeout: int = 30,
        **kwargs,
    ):
        """
        Initialize connector.

        Args:
            host: Database host
            port: Database port
            database: Database/schema name
            user: Database user
            password: Database password
            timeout: Connection timeout in seconds (default: 30)
            **kwargs: Additional connector-specific parameters
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.timeout = timeout
        self.kwargs = kwargs

        logger.info(f"Initialized {self.__class__.__name__} for {user}@{host}:{port}/{database}")

    @abstractmethod
    async def execute(self, query: str, timeout: int | None = None) -> StatementResult:
        """
        Execute one SQL statement on a fresh connection.

        Raises:
            QueryError: If query execution fails
            ConnectionError: If the connection cannot be opened
        """
        pass

    @abstractmethod
    async def ping(self) -> None:
        """
        Open a connection and ping the server.

        Raises:
            ConnectionError: If the server cannot be reached
        """
        pass

    @abstractmethod
    async def list_tables(self) -> list[str]:
        """
        Names of the tables in the current database.

        Raises:
            SchemaError: If introspection fails
        """
        pass

    @abstractmethod
    async def describe_table(self, table: str) -> list[ColumnInfo]:
        """
        Columns of one table.

        Raises:
            SchemaError: If introspection fails
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.user}@{self.host}:{self.port}/{self.database}>"
