"""Database connectors: local MySQL and the remote HTTP query proxy."""

from schoolchat.connectors.base import (
    BaseConnector,
    ConnectionError,
    ConnectorError,
    QueryError,
    SchemaError,
    StatementResult,
)
from schoolchat.connectors.mysql import MySQLConnector
from schoolchat.connectors.query_proxy import (
    IdentityTokenError,
    IdentityTokenSource,
    QueryProxyClient,
    QueryProxyError,
)

__all__ = [
    "BaseConnector",
    "ConnectionError",
    "ConnectorError",
    "QueryError",
    "SchemaError",
    "StatementResult",
    "MySQLConnector",
    "IdentityTokenError",
    "IdentityTokenSource",
    "QueryProxyClient",
    "QueryProxyError",
]
